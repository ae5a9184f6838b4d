"""
Session ids are namespaced with the game type. Share codes (short links, QR
codes) carry the bare id; these helpers move between the two forms and are
safe to apply twice.
"""


def session_prefix(game_type: str) -> str:
    return f"{game_type}_"


def add_session_prefix(code: str, game_type: str) -> str:
    prefix = session_prefix(game_type)
    return code if code.startswith(prefix) else prefix + code


def strip_session_prefix(session_id: str, game_type: str) -> str:
    prefix = session_prefix(game_type)
    return session_id[len(prefix):] if session_id.startswith(prefix) else session_id
