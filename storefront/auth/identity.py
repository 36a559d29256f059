"""Identity resolution: anonymous device keys and authenticated user keys."""
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from storefront.db import STOREFRONT_DEVICE_FILE
from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

ANONYMOUS_PREFIX = "anon-"


@dataclass(frozen=True)
class ActorKey:
    """Owner of a cart/favorites document."""
    value: str
    authenticated: bool = False

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class IdentityTransition:
    previous: ActorKey
    current: ActorKey

    @property
    def is_login(self) -> bool:
        return not self.previous.authenticated and self.current.authenticated

    @property
    def is_logout(self) -> bool:
        return self.previous.authenticated and not self.current.authenticated


IdentityCallback = Callable[[IdentityTransition], None]


def generate_anonymous_key() -> str:
    return f"{ANONYMOUS_PREFIX}{secrets.token_hex(16)}"


class DeviceIdStore:
    """Anonymous device id persisted in a local JSON file."""

    def __init__(self, path: str | Path = STOREFRONT_DEVICE_FILE) -> None:
        self.path = Path(path)

    def load(self) -> Optional[str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable device id file {self.path}: {e}")
            return None
        device_id = data.get("device_id") if isinstance(data, dict) else None
        return device_id if isinstance(device_id, str) and device_id else None

    def save(self, device_id: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "device_id": device_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.path.write_text(json.dumps(payload), encoding="utf-8")

    def load_or_create(self) -> str:
        device_id = self.load()
        if device_id is None:
            device_id = generate_anonymous_key()
            self.save(device_id)
            logger.info(f"Generated device id {sanitize_id_for_logging(device_id)}")
        return device_id


class IdentityResolver:
    """
    Tracks the active actor and notifies listeners on transitions.

    The auth collaborator calls ``sign_in``/``sign_out``; each call that
    changes the actor fires every listener exactly once.
    """

    def __init__(self, device_ids: DeviceIdStore) -> None:
        self._device_ids = device_ids
        self._actor = ActorKey(device_ids.load_or_create())
        self._listeners: List[IdentityCallback] = []

    def current_actor(self) -> ActorKey:
        return self._actor

    def on_identity_change(self, callback: IdentityCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def sign_in(self, user_id: str) -> Optional[IdentityTransition]:
        """Switch to the authenticated user ``user_id``."""
        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        if self._actor.authenticated and self._actor.value == user_id:
            return None
        return self._transition(ActorKey(user_id, authenticated=True))

    def sign_out(self) -> Optional[IdentityTransition]:
        """Drop the authenticated user and start a fresh anonymous session."""
        if not self._actor.authenticated:
            return None
        device_id = generate_anonymous_key()
        self._device_ids.save(device_id)
        return self._transition(ActorKey(device_id))

    def _transition(self, current: ActorKey) -> IdentityTransition:
        transition = IdentityTransition(previous=self._actor, current=current)
        self._actor = current
        logger.info(
            f"Identity change {sanitize_id_for_logging(transition.previous.value)} -> "
            f"{sanitize_id_for_logging(current.value)} (login={transition.is_login})"
        )
        for callback in list(self._listeners):
            callback(transition)
        return transition
