from uthabiti.utils.login_security import check_lockout, register_login_attempt
from uthabiti.utils.normalize import join_choices, normalize_number, normalize_string, normalize_value

__all__ = [
    "check_lockout",
    "register_login_attempt",
    "join_choices",
    "normalize_number",
    "normalize_string",
    "normalize_value",
]
