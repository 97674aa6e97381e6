from fastapi import Request


def set_flash(request: Request, message: str, level: str = "info"):
    request.session.setdefault("flash", []).append({"level": level, "message": message})


def pop_flash(request: Request) -> list[dict]:
    return request.session.pop("flash", None) or []
