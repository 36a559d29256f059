"""Identity resolution for anonymous and signed-in shoppers."""
from .identity import ActorKey, DeviceIdStore, IdentityResolver, IdentityTransition

__all__ = ["ActorKey", "DeviceIdStore", "IdentityResolver", "IdentityTransition"]
