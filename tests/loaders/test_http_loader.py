import unittest

import httpx

from galho.core.errors import LoaderError
from galho.core.ids import IdGenerator
from galho.core.model import UNLOADED
from galho.loaders.remote import HttpLoader


def make_loader(handler):
    return HttpLoader("http://tree.test/api/", IdGenerator(start=1), transport=httpx.MockTransport(handler))


class TestHttpLoader(unittest.IsolatedAsyncioTestCase):

    async def test_fetches_children(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[
                {"name": "docs", "has_children": True},
                {"name": "README.md"},
            ])

        children = await make_loader(handler).load("node-5", 2)

        self.assertEqual(seen[0].url.path, "/api/nodes/node-5/children")
        self.assertEqual(seen[0].url.params["depth"], "2")

        self.assertEqual([c.name for c in children], ["docs", "README.md"])
        self.assertEqual([c.id for c in children], ["node-1", "node-2"])
        self.assertTrue(all(c.parent_id == "node-5" for c in children))
        self.assertIs(children[0].children, UNLOADED)
        self.assertTrue(children[0].has_children)
        self.assertEqual(children[1].children, ())
        self.assertFalse(children[1].has_children)

    async def test_empty_list(self):
        loader = make_loader(lambda request: httpx.Response(200, json=[]))
        self.assertEqual(await loader.load("x", 0), [])

    async def test_server_error(self):
        loader = make_loader(lambda request: httpx.Response(503, text="down"))

        with self.assertLogs(level="ERROR"):
            with self.assertRaisesRegex(LoaderError, "503"):
                await loader.load("x", 0)

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertLogs(level="ERROR"):
            with self.assertRaises(LoaderError) as ctx:
                await make_loader(handler).load("x", 0)

        self.assertEqual(ctx.exception.node_id, "x")

    async def test_not_json(self):
        loader = make_loader(lambda request: httpx.Response(200, text="<html>"))
        with self.assertRaisesRegex(LoaderError, "not JSON"):
            await loader.load("x", 0)

    async def test_not_a_list(self):
        loader = make_loader(lambda request: httpx.Response(200, json={"children": []}))
        with self.assertRaisesRegex(LoaderError, "list"):
            await loader.load("x", 0)

    async def test_malformed_entry(self):
        loader = make_loader(lambda request: httpx.Response(200, json=[{"title": "no name"}]))
        with self.assertRaisesRegex(LoaderError, "malformed"):
            await loader.load("x", 0)
