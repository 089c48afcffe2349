#!/usr/bin/env python3
"""Change concurrency while an iteration is running.

Starts 100 items at concurrency 5, drops to 1 after 30ms and raises to 3
after 40ms. Each item takes a few milliseconds of simulated I/O.
"""

from __future__ import annotations

import asyncio
import logging

from iterflow import ConcurrentIterator


async def main() -> None:
    loop = asyncio.get_running_loop()
    finished = asyncio.Event()

    def visit(num: int, token) -> None:
        print(num, "in flight:", it.stats.pending)
        loop.call_later(0.002, token.advance)

    it = ConcurrentIterator(range(1, 101), 5)
    it.each(visit, finished.set)

    loop.call_later(0.03, setattr, it, "concurrency", 1)
    loop.call_later(0.04, setattr, it, "concurrency", 3)

    await finished.wait()
    print("done", it.stats)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
