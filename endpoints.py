# Endpoint table for the drive API; update if routes change.

BASE_URL = "http://localhost:5000"

AUTH = {
    "me": {
        "method": "GET",
        "path": "/api/auth/me",
    },
    "login": {
        "method": "POST",
        "path": "/api/auth/login",
    },
    "register": {
        "method": "POST",
        "path": "/api/auth/register",
    },
    "logout": {
        "method": "POST",
        "path": "/api/auth/logout",
    },
    "activate": {
        "method": "POST",
        "path": "/api/auth/activate",
    },
    "forgot_password": {
        "method": "POST",
        "path": "/api/auth/forgot-password",
    },
    "reset_password": {
        "method": "POST",
        "path": "/api/auth/reset-password",
    },
}

DRIVE = {
    "list": {
        "method": "GET",
        "path": "/api/drive",
    },
    "create_folder": {
        "method": "POST",
        "path": "/api/drive/folder",
    },
    "upload": {
        "method": "POST",
        "path": "/api/drive/upload",
    },
    "delete": {
        "method": "DELETE",
        "path": "/api/drive/{item_id}",
    },
    "view_url": {
        "method": "GET",
        "path": "/api/drive/file/{item_id}/view",
    },
}

# The upload form cannot carry an absent parent, so the root travels as this string.
NO_PARENT = "null"
