"""Built-in CLI sub-command groups (``auth``, ``config``, ``api``)."""

from __future__ import annotations

import typer

from gitlab_cli.config import ConfigStore


def get_store(ctx: typer.Context) -> ConfigStore:
    """Return the :class:`ConfigStore` loaded by the root callback."""
    obj = ctx.obj or {}
    store = obj.get("store")
    if store is None:
        store = ConfigStore.load()
        ctx.ensure_object(dict)["store"] = store
    return store
