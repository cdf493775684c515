"""Resource-specific convenience wrappers."""
from .containers import ContainersResource
from .images import ImagesResource
from .operations import OperationsResource
from .profiles import ProfilesResource

__all__ = [
    "ContainersResource",
    "ImagesResource",
    "OperationsResource",
    "ProfilesResource",
]
