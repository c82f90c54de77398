from galho.config import Settings
from galho.core.errors import ConfigError
from galho.core.ids import IdGenerator, generate_id
from .base import ChildLoader
from .remote import HttpLoader
from .simulated import SimulatedLoader

LOADERS = ["simulated", "http"]


def build_loader(settings: Settings, id_generator: IdGenerator = generate_id) -> ChildLoader:
    """Returns the loader named by settings.loader."""
    if settings.loader == "simulated":
        return SimulatedLoader(
            id_generator,
            min_delay=settings.min_delay,
            max_delay=settings.max_delay,
            max_depth=settings.max_depth,
        )

    if settings.loader == "http":
        return HttpLoader(settings.base_url, id_generator, timeout=settings.timeout)

    raise ConfigError(f"Unknown loader '{settings.loader}' (expected one of: {', '.join(LOADERS)})")
