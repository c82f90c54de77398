import itertools


class IdGenerator:
    """Hands out `node-100`, `node-101`, ... never repeating for its lifetime."""

    def __init__(self, prefix: str = "node-", start: int = 100) -> None:
        self.prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}{next(self._counter)}"


generate_id = IdGenerator()
