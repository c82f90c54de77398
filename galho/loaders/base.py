from abc import ABC, abstractmethod
from typing import List

from galho.core.model import TreeNode


class ChildLoader(ABC):
    """Base class inherited by all child loaders."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Friendly loader name shown in the UI."""
        pass

    @abstractmethod
    async def load(self, node_id: str, depth: int) -> List[TreeNode]:
        """
        Fetches the children of node_id, each with a fresh unique id.

        May return an empty list. Raises LoaderError when the children cannot
        be produced.
        """
        pass
