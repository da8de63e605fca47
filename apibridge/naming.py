"""Derive endpoint, operation and tool names from paths.

Pattern: {verb}_{resource}
  - GET collection      -> list_{plural}
  - GET collection/{id} -> get_{singular}
  - POST collection     -> create_{singular}
  - PUT collection/{id} -> update_{singular}
  - PATCH col/{id}      -> patch_{singular}
  - DELETE col/{id}     -> delete_{singular}

Examples:
  /users               -> endpoint users
  /users/{userId}      -> endpoint users
  /order-items/{id}    -> endpoint order_items
  /admin/reports       -> endpoint admin_reports
  /                    -> endpoint root
"""

from __future__ import annotations

import re

# OperationKey -> tool verb
_KEY_VERBS: dict[str, str] = {
    "GET": "get",
    "GET_COLLECTION": "list",
    "POST": "create",
    "PUT": "update",
    "PATCH": "patch",
    "DELETE": "delete",
}

_PARAM_SEGMENT = re.compile(r"\{[^}]+\}.*$")


def pluralize(word: str) -> str:
    """Return a simple English plural of word."""
    if word.endswith("y"):
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    """Strip one trailing 's' unless the word ends in 'ss'.

    users -> user, addresses -> addresse, address -> address.
    """
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def _strip_s(word: str) -> str:
    return word[:-1] if word.endswith("s") else word


def is_collection_path(path: str) -> bool:
    """A path is a collection path unless it ends in a {param} segment."""
    return not path.endswith("}")


def endpoint_name(path: str) -> str:
    """Map a path template to its logical endpoint name."""
    name = path[1:] if path.startswith("/") else path
    name = _PARAM_SEGMENT.sub("", name)
    if name.endswith("/"):
        name = name[:-1]
    name = re.sub(r"[/-]", "_", name)
    return name or "root"


def generate_operation_id(method: str, path: str) -> str:
    """Build an operation id for an operation that declares none."""
    parts = [p for p in path.split("/") if p and not p.startswith("{")]
    resource = parts[-1] if parts else "root"
    collection = is_collection_path(path)

    method_upper = method.upper()
    if method_upper == "GET":
        action = "list" if collection else "get"
    elif method_upper == "POST":
        action = "create"
    elif method_upper in ("PUT", "PATCH"):
        action = "update"
    elif method_upper == "DELETE":
        action = "delete"
    else:
        action = method.lower()

    return f"{action}_{resource if collection else _strip_s(resource)}"


def build_tool_name(operation_key: str, endpoint: str) -> str:
    """Build a tool name from an operation key and endpoint name.

    Returns a name like 'list_users' or 'get_user'.
    """
    verb = _KEY_VERBS.get(operation_key)
    if verb is None:
        return f"{operation_key.lower()}_{endpoint}"
    if operation_key == "GET_COLLECTION":
        return f"{verb}_{endpoint}"
    return f"{verb}_{singularize(endpoint)}"
