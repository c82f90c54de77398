import logging
from typing import List, Optional

import httpx

from galho.core.errors import LoaderError
from galho.core.ids import IdGenerator, generate_id
from galho.core.model import UNLOADED, TreeNode
from galho.loaders.base import ChildLoader


class HttpLoader(ChildLoader):
    """
    Fetches children from a JSON endpoint:

        GET {base_url}/nodes/{node_id}/children?depth=N
        -> [{"name": "...", "has_children": true}, ...]

    Ids are generated locally so they stay unique for the whole tree.
    """

    def __init__(
        self,
        base_url: str,
        id_generator: IdGenerator = generate_id,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.id_generator = id_generator
        self.timeout = timeout
        self.transport = transport

    @property
    def name(self) -> str:
        return "HTTP"

    async def load(self, node_id: str, depth: int) -> List[TreeNode]:
        url = f"{self.base_url}/nodes/{node_id}/children"
        logging.info(f"Fetching children of {node_id} from {url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, params={"depth": depth})
        except httpx.HTTPError as e:
            logging.error(f"Request Error for {node_id}: {e}")
            raise LoaderError(node_id, f"request failed: {e}")

        if response.status_code != 200:
            logging.error(f"Loader API Error {response.status_code}: {response.text}")
            raise LoaderError(node_id, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            raise LoaderError(node_id, "response is not JSON")

        if not isinstance(payload, list):
            raise LoaderError(node_id, "expected a JSON list of children")

        return [self._to_node(node_id, item) for item in payload]

    def _to_node(self, parent_id: str, item) -> TreeNode:
        if not isinstance(item, dict) or not isinstance(item.get("name"), str):
            raise LoaderError(parent_id, f"malformed child entry: {item!r}")

        has_children = bool(item.get("has_children", False))
        return TreeNode(
            id=self.id_generator(),
            name=item["name"],
            children=UNLOADED if has_children else (),
            has_children=has_children,
            parent_id=parent_id,
        )
