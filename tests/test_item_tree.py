import asyncio
import unittest

from clouddrive.api import item_from_row
from clouddrive.client import CloudClient
from clouddrive.errors import InvalidStateError
from clouddrive.events import Notifier
from clouddrive.item_tree import ItemTree

from fakes import BASE_URL, FakeDriveServer, RecordingNotifications, make_item, wait_for


class ItemTreeTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.server = FakeDriveServer()
        self.server.add_session("tok")
        self.client = CloudClient(base_url=BASE_URL, transport=self.server.transport())
        self.notifier = Notifier()
        self.notes = RecordingNotifications(self.notifier)
        self.prompts = []
        self.answer = True
        self.tree = ItemTree(self.client, self.notifier, confirm=self._confirm)
        self.tree.open("u1", "tok")

    def _confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer

    async def asyncTearDown(self) -> None:
        await self.client.aclose()

    def ids(self, items):
        return [item.id for item in items]


class TestNavigation(ItemTreeTestCase):
    async def test_root_scenario(self) -> None:
        self.server.items.append(make_item("f1", "Docs"))

        self.assertTrue(await self.tree.enter_folder(None))
        self.assertEqual(self.ids(self.tree.current_children()), ["f1"])
        self.assertEqual(self.server.calls("list"), [{"ownerId": "u1"}])

        self.assertTrue(await self.tree.enter_folder("f1"))
        self.assertEqual(self.tree.current_children(), [])
        self.assertEqual(self.server.calls("list")[-1], {"ownerId": "u1", "parentId": "f1"})
        # f1 left the listing cache but stays resolvable for the trail.
        self.assertEqual(self.tree.items(), [])
        self.assertEqual(self.ids(self.tree.breadcrumb_trail()), ["f1"])

    async def test_breadcrumb_follows_parent_chain(self) -> None:
        self.tree.append(item_from_row(make_item("F1", "One")))
        self.tree.append(item_from_row(make_item("F2", "Two", parent_id="F1")))

        await self.tree.enter_folder("F2")

        self.assertEqual(self.ids(self.tree.breadcrumb_trail()), ["F1", "F2"])

    async def test_breadcrumb_built_by_navigation(self) -> None:
        self.server.items.extend([
            make_item("F1", "One"),
            make_item("F2", "Two", parent_id="F1"),
            make_item("F3", "Three", parent_id="F2"),
        ])
        await self.tree.enter_folder(None)
        await self.tree.enter_folder("F1")
        await self.tree.enter_folder("F2")
        await self.tree.enter_folder("F3")

        self.assertEqual(self.ids(self.tree.breadcrumb_trail()), ["F1", "F2", "F3"])

    async def test_breadcrumb_stops_at_unknown_id(self) -> None:
        self.tree.append(item_from_row(make_item("F2", "Two", parent_id="missing")))
        await self.tree.enter_folder("F2")
        self.assertEqual(self.ids(self.tree.breadcrumb_trail()), ["F2"])

        await self.tree.enter_folder("nowhere")
        self.assertEqual(self.tree.breadcrumb_trail(), [])

    async def test_children_keep_insertion_order(self) -> None:
        self.server.items.extend([make_item("b", "B"), make_item("a", "A")])
        await self.tree.enter_folder(None)
        self.tree.append(item_from_row(make_item("c", "C")))
        self.tree.append(item_from_row(make_item("x", "X", parent_id="b")))

        self.assertEqual(self.ids(self.tree.current_children()), ["b", "a", "c"])

    async def test_stale_listing_is_discarded(self) -> None:
        self.server.items.extend([
            make_item("a1", "In A", parent_id="A"),
            make_item("b1", "In B", parent_id="B"),
        ])
        gate = asyncio.Event()
        self.server.list_gates["A"] = gate

        pending = asyncio.create_task(self.tree.enter_folder("A"))
        await wait_for(lambda: len(self.server.calls("list")) == 1)
        self.assertTrue(await self.tree.enter_folder("B"))
        gate.set()

        self.assertFalse(await pending)
        self.assertEqual(self.tree.active_folder_id, "B")
        self.assertEqual(self.ids(self.tree.items()), ["b1"])
        self.assertEqual(self.ids(self.tree.current_children()), ["b1"])

    async def test_stale_listing_loses_to_pending_newer_one(self) -> None:
        self.server.items.extend([
            make_item("a1", "In A", parent_id="A"),
            make_item("b1", "In B", parent_id="B"),
        ])
        gate_a = asyncio.Event()
        gate_b = asyncio.Event()
        self.server.list_gates["A"] = gate_a
        self.server.list_gates["B"] = gate_b

        first = asyncio.create_task(self.tree.enter_folder("A"))
        await wait_for(lambda: len(self.server.calls("list")) == 1)
        second = asyncio.create_task(self.tree.enter_folder("B"))
        await wait_for(lambda: len(self.server.calls("list")) == 2)

        gate_a.set()
        self.assertFalse(await first)
        self.assertEqual(self.tree.items(), [])

        gate_b.set()
        self.assertTrue(await second)
        self.assertEqual(self.ids(self.tree.items()), ["b1"])

    async def test_listing_failure_keeps_cache_but_moves_cursor(self) -> None:
        self.server.items.append(make_item("f1", "Docs"))
        await self.tree.enter_folder(None)
        self.server.failures["list"] = (500, {"message": "db down"})

        self.assertFalse(await self.tree.enter_folder("f1"))

        self.assertEqual(self.tree.active_folder_id, "f1")
        self.assertEqual(self.ids(self.tree.items()), ["f1"])
        self.assertEqual(self.notes.errors, ["db down"])

    async def test_listing_network_failure_uses_generic_message(self) -> None:
        self.server.offline.add("list")
        self.assertFalse(await self.tree.enter_folder(None))
        self.assertEqual(self.notes.errors, ["Failed to load files"])

    async def test_stale_failure_is_silent(self) -> None:
        gate = asyncio.Event()
        self.server.list_gates["A"] = gate
        pending = asyncio.create_task(self.tree.enter_folder("A"))
        await wait_for(lambda: len(self.server.calls("list")) == 1)
        await self.tree.enter_folder("B")
        self.server.failures["list"] = (500, {"message": "late failure"})
        gate.set()

        self.assertFalse(await pending)
        self.assertEqual(self.notes.errors, [])

    async def test_close_invalidates_in_flight_listing(self) -> None:
        self.server.items.append(make_item("f1", "Docs"))
        gate = asyncio.Event()
        self.server.list_gates[None] = gate
        pending = asyncio.create_task(self.tree.enter_folder(None))
        await wait_for(lambda: len(self.server.calls("list")) == 1)

        self.tree.close()
        gate.set()

        self.assertFalse(await pending)
        self.assertEqual(self.tree.items(), [])

    async def test_row_with_unusable_timestamp_still_lists(self) -> None:
        self.server.items.append(make_item("d1", "old.txt", kind="doc", createdAt=10**20))

        self.assertTrue(await self.tree.enter_folder(None))

        self.assertEqual(self.ids(self.tree.current_children()), ["d1"])
        self.assertIsNone(self.tree.get("d1").created_at)
        self.assertEqual(self.notes.errors, [])

    async def test_refresh_relists_active_folder(self) -> None:
        await self.tree.enter_folder("f1")
        self.server.items.append(make_item("n1", "New", parent_id="f1"))

        self.assertTrue(await self.tree.refresh())

        self.assertEqual(self.server.calls("list")[-1], {"ownerId": "u1", "parentId": "f1"})
        self.assertEqual(self.ids(self.tree.current_children()), ["n1"])

    async def test_closed_tree_rejects_operations(self) -> None:
        self.tree.close()
        with self.assertRaises(InvalidStateError):
            await self.tree.enter_folder(None)
        with self.assertRaises(InvalidStateError):
            await self.tree.create_folder("x", None)


class TestCreateFolder(ItemTreeTestCase):
    async def test_create_appends_and_notifies(self) -> None:
        await self.tree.enter_folder(None)

        item = await self.tree.create_folder("Reports", None)

        self.assertIsNotNone(item)
        self.assertTrue(item.is_folder)
        self.assertEqual(self.server.calls("folder"), [{"name": "Reports", "parentId": None, "ownerId": "u1"}])
        self.assertEqual(self.ids(self.tree.current_children()), [item.id])
        self.assertEqual(self.notes.successes, ["Folder created successfully"])

    async def test_empty_name_aborts_before_network(self) -> None:
        for name in (None, "", "   "):
            self.assertIsNone(await self.tree.create_folder(name, None))
        self.assertEqual(self.server.calls("folder"), [])
        self.assertEqual(self.notes.received, [])

    async def test_failure_leaves_cache_untouched(self) -> None:
        self.server.failures["folder"] = (409, {"message": "Folder already exists"})

        self.assertIsNone(await self.tree.create_folder("Reports", None))

        self.assertEqual(self.tree.items(), [])
        self.assertEqual(self.notes.errors, ["Folder already exists"])

    async def test_failure_without_server_message(self) -> None:
        self.server.failures["folder"] = (500, "")
        await self.tree.create_folder("Reports", None)
        self.assertEqual(self.notes.errors, ["Could not create folder"])


class TestDelete(ItemTreeTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.server.items.extend([
            make_item("f1", "Docs"),
            make_item("f2", "Pics"),
        ])
        await self.tree.enter_folder(None)

    async def test_requires_confirmation(self) -> None:
        self.answer = False

        self.assertFalse(await self.tree.delete_item("f1"))

        self.assertEqual(self.prompts, ["Delete Docs?"])
        self.assertEqual(self.server.calls("delete"), [])
        self.assertEqual(self.ids(self.tree.items()), ["f1", "f2"])

    async def test_no_confirm_callback_never_deletes(self) -> None:
        tree = ItemTree(self.client, self.notifier)
        tree.open("u1", "tok")
        self.assertFalse(await tree.delete_item("f1"))
        self.assertEqual(self.server.calls("delete"), [])

    async def test_success_removes_only_target(self) -> None:
        self.tree.append(item_from_row(make_item("child", "Nested", parent_id="f1")))

        self.assertTrue(await self.tree.delete_item("f1"))

        self.assertEqual(self.ids(self.tree.items()), ["f2", "child"])
        self.assertIsNone(self.tree.get("f1"))
        self.assertEqual(self.notes.successes, ["Item deleted"])

    async def test_failure_keeps_item(self) -> None:
        self.server.failures["delete"] = (500, {"message": "Could not reach storage"})

        self.assertFalse(await self.tree.delete_item("f1"))
        self.assertEqual(self.ids(self.tree.items()), ["f1", "f2"])
        self.assertEqual(self.notes.errors, ["Could not reach storage"])

        del self.server.failures["delete"]
        self.assertTrue(await self.tree.delete_item("f1"))
        self.assertEqual(self.ids(self.tree.items()), ["f2"])
        self.assertEqual(len(self.server.calls("delete")), 2)


class TestViewUrl(ItemTreeTestCase):
    def _file(self, **extra):
        return item_from_row(make_item("d1", "report.pdf", kind="pdf", **extra))

    async def test_signed_url_preferred(self) -> None:
        url = await self.tree.resolve_view_url(self._file(s3Url="https://bucket.example/report.pdf"))
        self.assertEqual(url, "https://signed.example/d1?sig=abc")

    async def test_falls_back_to_stored_locator(self) -> None:
        self.server.failures["view"] = (500, {"message": "signing failed"})
        url = await self.tree.resolve_view_url(self._file(s3Url="https://bucket.example/report.pdf"))
        self.assertEqual(url, "https://bucket.example/report.pdf")
        self.assertEqual(self.notes.errors, [])

    async def test_missing_locator_is_rejected_locally(self) -> None:
        url = await self.tree.resolve_view_url(self._file())
        self.assertIsNone(url)
        self.assertEqual(self.server.calls("view"), [])
        self.assertEqual(self.notes.errors, ["File URL not available"])


if __name__ == "__main__":
    unittest.main()
