"""High-level LXD client entrypoints."""
__version__ = "0.4.0"

from .client import LXDClient  # noqa: E402
from .config import ClientConfig, default_config  # noqa: E402
from .exceptions import APIError, LXDError, RequestBuildError  # noqa: E402
from .operations import Operation, OperationStatus  # noqa: E402

__all__ = [
    "LXDClient",
    "ClientConfig",
    "default_config",
    "LXDError",
    "APIError",
    "RequestBuildError",
    "Operation",
    "OperationStatus",
    "__version__",
]
