"""
Role model and the authorization policy table.

Every handler that gates an action asks `authorize()` (or `is_allowed()`)
with the acting user's role and the facts it knows about the target:
whether the actor owns the resource and whether the target is the actor.
"""
from dataclasses import dataclass
from enum import Enum

from tramoo.core.exceptions import Forbidden


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def at_least(self, other: "Role") -> bool:
        return self.rank >= other.rank


_RANKS = {Role.USER: 0, Role.ADMIN: 1, Role.OWNER: 2}


class Action(str, Enum):
    CREATE_POST = "create_post"
    EDIT_POST = "edit_post"
    DELETE_POST = "delete_post"
    LIKE_POST = "like_post"
    ADD_COMMENT = "add_comment"
    DELETE_COMMENT = "delete_comment"
    LIST_USERS = "list_users"
    PROMOTE_ADMIN = "promote_admin"
    DEMOTE_ADMIN = "demote_admin"
    DELETE_USER = "delete_user"
    RECOMPUTE_STATS = "recompute_stats"


@dataclass(frozen=True)
class Rule:
    min_role: Role = Role.USER
    # Owning the resource grants the action regardless of min_role
    owner_bypass: bool = False
    # Refuse when the target is the actor
    deny_self: bool = False


POLICY: dict[Action, Rule] = {
    Action.CREATE_POST: Rule(),
    Action.LIKE_POST: Rule(),
    Action.ADD_COMMENT: Rule(),
    Action.EDIT_POST: Rule(min_role=Role.ADMIN, owner_bypass=True),
    Action.DELETE_POST: Rule(min_role=Role.ADMIN, owner_bypass=True),
    Action.DELETE_COMMENT: Rule(min_role=Role.ADMIN, owner_bypass=True),
    Action.LIST_USERS: Rule(min_role=Role.ADMIN),
    Action.RECOMPUTE_STATS: Rule(min_role=Role.ADMIN),
    Action.PROMOTE_ADMIN: Rule(min_role=Role.ADMIN),
    Action.DEMOTE_ADMIN: Rule(min_role=Role.OWNER),
    Action.DELETE_USER: Rule(min_role=Role.OWNER, deny_self=True),
}


def is_allowed(action: Action, role: Role | str, *, is_owner: bool = False, is_self: bool = False) -> bool:
    rule = POLICY[action]
    if rule.deny_self and is_self:
        return False
    if rule.owner_bypass and is_owner:
        return True
    return Role(role).at_least(rule.min_role)


def authorize(action: Action, role: Role | str, *, is_owner: bool = False, is_self: bool = False) -> None:
    """Raise Forbidden unless the policy table allows the action."""
    if not is_allowed(action, role, is_owner=is_owner, is_self=is_self):
        raise Forbidden()
