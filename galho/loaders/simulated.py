import asyncio
import logging
import random
from typing import List, Optional

from galho.core.ids import IdGenerator, generate_id
from galho.core.model import UNLOADED, TreeNode
from galho.loaders.base import ChildLoader


class SimulatedLoader(ChildLoader):
    """Pretends to be a slow remote API that invents 1 to 3 children per node."""

    def __init__(
        self,
        id_generator: IdGenerator = generate_id,
        min_delay: float = 0.3,
        max_delay: float = 1.1,
        max_depth: int = 2,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.id_generator = id_generator
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.max_depth = max_depth
        self.rng = rng or random.Random()

    @property
    def name(self) -> str:
        return "Simulated"

    async def load(self, node_id: str, depth: int) -> List[TreeNode]:
        await asyncio.sleep(self.rng.uniform(self.min_delay, self.max_delay))

        # Deeper levels mostly come back empty
        if depth > self.max_depth and self.rng.random() < 0.7:
            logging.debug(f"Simulated load of {node_id}: no children at depth {depth}")
            return []

        children = []
        for i in range(self.rng.randint(1, 3)):
            has_grandchildren = self.rng.random() > 0.5 and depth <= self.max_depth
            children.append(
                TreeNode(
                    id=self.id_generator(),
                    name=f"Lazy Child {node_id}-{i + 1}",
                    children=UNLOADED if has_grandchildren else (),
                    has_children=has_grandchildren,
                    parent_id=node_id,
                )
            )

        logging.debug(f"Simulated load of {node_id}: {len(children)} children")
        return children
