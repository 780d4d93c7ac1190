"""CLI command for creating the relational schema.

Usage:
    shortline init-db
"""

from __future__ import annotations

import asyncio

import typer

from shortline.persistence.db import close_db, init_db

app = typer.Typer(help="Create the shortline tables")


async def _init() -> None:
    try:
        await init_db()
    finally:
        await close_db()


@app.callback(invoke_without_command=True)
def init() -> None:
    """Create the users, shorts, following and likes tables if missing."""
    asyncio.run(_init())
    typer.echo("Database schema is up to date")
