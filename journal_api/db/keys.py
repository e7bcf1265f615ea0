"""Partition / sort key scheme for the single journal table"""

STRUCTURE_PREFIX = "STRUCTURE#"
ENTRY_PREFIX = "DATE#"
ACTION_PREFIX = "ACTION#"


def structure_pk(user_id: str) -> str:
    return f"USER#{user_id}#STRUCTURE"


def structure_sk(effective_from: str, structure_id: str) -> str:
    # effective date first so a range scan returns versions in date order
    return f"{STRUCTURE_PREFIX}{effective_from}#{structure_id}"


def entries_pk(user_id: str) -> str:
    return f"USER#{user_id}#ENTRIES"


def entry_sk(date: str) -> str:
    return f"{ENTRY_PREFIX}{date}"


def actions_pk(user_id: str) -> str:
    return f"USER#{user_id}#ACTIONS"


def action_sk(action_id: str) -> str:
    return f"{ACTION_PREFIX}{action_id}"
