"""
NGO Portal - Mutation Policy

Maps each gated operation to the capability it requires.
Policies are defined in policies.yaml and checked against the caller's
resolved Permissions.

Security:
- Deny-by-default: unknown actions and unknown capabilities are refused
- A missing caller (None permissions) is refused with the same message
- Failures never say which check failed
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

import yaml

from ngo_portal.auth.errors import AuthError, AuthErrorCode
from ngo_portal.auth.permissions import HubId, Permissions


logger = logging.getLogger(__name__)

POLICY_PATH = Path(__file__).parent / "policies.yaml"


class Capability(str, Enum):
    AUTHENTICATED = "authenticated"
    GLOBAL_ADMIN = "global_admin"
    SUPER_ADMIN = "super_admin"
    MANAGE_HUB = "manage_hub"


class MutationPolicy:
    """
    Action-to-capability table loaded from policies.yaml.

    Singleton; the file is read once per process.
    """

    _instance: Optional["MutationPolicy"] = None
    _actions: Dict[str, Capability] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_policies()
        return cls._instance

    def _load_policies(self, path: Path = POLICY_PATH):
        """Load action policies from YAML configuration."""
        if not path.exists():
            # Default deny-all if no policy file
            self._actions = {}
            return

        with open(path, "r") as f:
            config = yaml.safe_load(f) or {}

        actions = {}
        for action, capability in config.get("actions", {}).items():
            try:
                actions[action] = Capability(capability)
            except ValueError:
                logger.error("Unknown capability %r for action %s; action denied", capability, action)
        self._actions = actions

    def required_capability(self, action: str) -> Optional[Capability]:
        return self._actions.get(action)

    def is_allowed(
        self,
        permissions: Optional[Permissions],
        action: str,
        hub_id: Optional[HubId] = None,
    ) -> bool:
        """
        Check whether the caller may perform an action.

        Args:
            permissions: Resolved caller, or None if unauthenticated
            action: Policy key, e.g. "hubs.update"
            hub_id: Target hub for manage_hub actions
        """
        if permissions is None:
            return False

        capability = self.required_capability(action)
        if capability is None:
            return False
        if capability == Capability.AUTHENTICATED:
            return True
        if capability == Capability.GLOBAL_ADMIN:
            return permissions.is_global_admin()
        if capability == Capability.SUPER_ADMIN:
            return permissions.is_super_admin()
        if capability == Capability.MANAGE_HUB:
            return hub_id is not None and permissions.can_manage_hub(hub_id)
        return False


def ensure_allowed(
    permissions: Optional[Permissions],
    action: str,
    hub_id: Optional[HubId] = None,
) -> Permissions:
    """
    Return the caller's permissions or refuse.

    Raises:
        AuthError(INSUFFICIENT_PERMISSIONS)
    """
    if not MutationPolicy().is_allowed(permissions, action, hub_id):
        user_id = permissions.user.id if permissions else None
        logger.info("Denied %s for user=%s hub=%s", action, user_id, hub_id)
        raise AuthError(AuthErrorCode.INSUFFICIENT_PERMISSIONS)
    return permissions
