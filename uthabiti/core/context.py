import contextvars

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_actor_id: contextvars.ContextVar[str] = contextvars.ContextVar("actor_id", default="-")
_client_ip: contextvars.ContextVar[str | None] = contextvars.ContextVar("client_ip", default=None)
_user_agent: contextvars.ContextVar[str | None] = contextvars.ContextVar("user_agent", default=None)


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def set_actor_id(actor_id) -> None:
    _actor_id.set(str(actor_id) if actor_id is not None else "-")


def get_actor_id() -> str:
    return _actor_id.get()


def set_client(ip: str | None, user_agent: str | None) -> None:
    _client_ip.set(ip)
    _user_agent.set(user_agent)


def get_client_ip() -> str | None:
    return _client_ip.get()


def get_user_agent() -> str | None:
    return _user_agent.get()


def clear_context() -> None:
    _request_id.set("-")
    _actor_id.set("-")
    _client_ip.set(None)
    _user_agent.set(None)
