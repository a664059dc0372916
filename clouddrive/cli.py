import argparse
import asyncio
import getpass
import json
import sys
from typing import Optional

from .app import DriveApp
from .config import Settings
from .models import Notification, NotificationLevel, UploadPayload, UploadPhase
from .view import render_rows


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='clouddrive')
    p.add_argument('--session', help='Path of the persisted credential file')
    p.add_argument('--base-url', help='API root URL')
    sub = p.add_subparsers(dest='cmd', required=True)

    auth = sub.add_parser('auth')
    auth_sub = auth.add_subparsers(dest='auth_cmd', required=True)
    auth_login = auth_sub.add_parser('login')
    auth_login.add_argument('--email', required=True)
    auth_login.add_argument('--password')
    auth_sub.add_parser('logout')
    auth_register = auth_sub.add_parser('register')
    auth_register.add_argument('--first-name', required=True)
    auth_register.add_argument('--last-name', required=True)
    auth_register.add_argument('--email', required=True)
    auth_register.add_argument('--password')
    auth_activate = auth_sub.add_parser('activate')
    auth_activate.add_argument('token')
    auth_forgot = auth_sub.add_parser('forgot')
    auth_forgot.add_argument('email')
    auth_reset = auth_sub.add_parser('reset')
    auth_reset.add_argument('token')
    auth_reset.add_argument('--password')

    sub.add_parser('whoami')

    ls = sub.add_parser('ls')
    ls.add_argument('--folder', help='Folder id (defaults to the owner root)')
    ls.add_argument('--json', action='store_true')

    mkdir = sub.add_parser('mkdir')
    mkdir.add_argument('name')
    mkdir.add_argument('--parent')

    rm = sub.add_parser('rm')
    rm.add_argument('item_id')
    rm.add_argument('--folder', help='Folder holding the item, used to show its name')
    rm.add_argument('--yes', action='store_true', help='Do not ask for confirmation')

    upload = sub.add_parser('upload')
    upload.add_argument('path')
    upload.add_argument('--parent')

    view = sub.add_parser('view')
    view.add_argument('item_id')
    view.add_argument('--folder', help='Folder holding the item')

    return p


def _print_notification(notification: Notification) -> None:
    prefix = 'ERROR' if notification.level is NotificationLevel.ERROR else 'OK'
    print(f'{prefix}: {notification.message}', file=sys.stderr)


def _confirm_prompt(assume_yes: bool):
    def confirm(prompt: str) -> bool:
        if assume_yes:
            return True
        answer = input(f'{prompt} [y/N] ')
        return answer.strip().lower() in ('y', 'yes')

    return confirm


def _password(value: Optional[str]) -> str:
    return value if value else getpass.getpass('Password: ')


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    confirm = _confirm_prompt(getattr(args, 'yes', False))
    async with DriveApp(settings, confirm=confirm) as app:
        app.notifier.subscribe(_print_notification)
        session = await app.start()
        # One-shot commands do not need the background session check.
        app.monitor.stop()

        if args.cmd == 'auth':
            if args.auth_cmd == 'login':
                result = await app.account.login(args.email, _password(args.password))
            elif args.auth_cmd == 'logout':
                await app.session.logout()
                return 0
            elif args.auth_cmd == 'register':
                result = await app.account.register(
                    args.first_name, args.last_name, args.email, _password(args.password)
                )
            elif args.auth_cmd == 'activate':
                result = await app.account.activate(args.token)
            elif args.auth_cmd == 'forgot':
                result = await app.account.forgot_password(args.email)
            else:
                result = await app.account.reset_password(args.token, _password(args.password))
            app.monitor.stop()
            return 0 if result.ok else 1

        if not session.authenticated:
            print('Not logged in. Run: clouddrive auth login --email <email>', file=sys.stderr)
            return 1

        if args.cmd == 'whoami':
            identity = session.identity
            print(f"{identity.id}\t{identity.display_name}\t{identity.email or '-'}")
            return 0

        if args.cmd == 'ls':
            folder = args.folder or app.tree.root_folder_id
            if not await app.tree.enter_folder(folder):
                return 1
            view = app.dashboard()
            if args.json:
                rows = [
                    {'id': r.id, 'name': r.name, 'kind': r.kind.value, 'size': r.size_label, 'created': r.created_label}
                    for r in view.rows
                ]
                print(json.dumps(rows, indent=2))
            else:
                print(' / '.join(label for _id, label in view.breadcrumbs))
                for line in render_rows(view):
                    print(line)
            return 0

        if args.cmd == 'mkdir':
            item = await app.tree.create_folder(args.name, args.parent or app.tree.root_folder_id)
            if item is None:
                return 1
            print(item.id)
            return 0

        if args.cmd == 'rm':
            if args.folder:
                await app.tree.enter_folder(args.folder)
            return 0 if await app.tree.delete_item(args.item_id) else 1

        if args.cmd == 'upload':
            payload = UploadPayload.from_path(args.path)
            phases = []
            app.uploads.subscribe(lambda status: phases.append(status.phase))
            app.uploads.start(payload, args.parent or app.tree.root_folder_id)
            await app.uploads.wait_idle()
            return 0 if UploadPhase.DONE in phases else 1

        if args.cmd == 'view':
            await app.tree.enter_folder(args.folder or app.tree.root_folder_id)
            item = app.tree.get(args.item_id)
            if item is None:
                print(f'Item {args.item_id} not found in folder', file=sys.stderr)
                return 1
            url = await app.tree.resolve_view_url(item)
            if not url:
                return 1
            print(url)
            return 0

    return 1


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env()
    if args.session:
        settings.session_path = args.session
    if args.base_url:
        settings.base_url = args.base_url
    return asyncio.run(_run(args, settings))


if __name__ == '__main__':
    raise SystemExit(main())
