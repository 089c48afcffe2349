#!/usr/bin/env python3
"""Run shell commands two at a time and collect their output in order."""

from __future__ import annotations

import asyncio

from iterflow import amap, ainject


async def run_command(cmd: str) -> str:
    proc = await asyncio.create_subprocess_shell(cmd, stdout=asyncio.subprocess.PIPE)
    out, _ = await proc.communicate()
    return out.decode().strip()


async def record_status(table: dict[str, str | None], cmd: str) -> dict[str, str | None]:
    proc = await asyncio.create_subprocess_shell(cmd, stdout=asyncio.subprocess.PIPE)
    out, _ = await proc.communicate()
    table[cmd] = out.decode().strip() if proc.returncode == 0 else None
    return table


async def main() -> None:
    commands = ["pwd", "uptime", "uname", "date"]

    outputs = await amap(commands, run_command, concurrency=2)
    for cmd, output in zip(commands, outputs):
        print(f"{cmd}: {output}")

    table = await ainject(commands, {}, record_status, concurrency=2)
    print(table)


if __name__ == "__main__":
    asyncio.run(main())
