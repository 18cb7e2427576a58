from uuid import uuid4


def new_id() -> str:
    """Непрозрачный идентификатор записи (32 hex-символа)."""
    return uuid4().hex
