from . import identify  # noqa: F401
