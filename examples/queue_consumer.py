#!/usr/bin/env python3
"""Consume a queue whose items arrive while iteration is already running."""

from __future__ import annotations

from iterflow import AsyncQueue, ConcurrentIterator, ManualScheduler


def main() -> None:
    scheduler = ManualScheduler()
    queue = AsyncQueue(scheduler)
    queue.push("glasses", "apples")

    result: list[str] = []

    def have(item: str, token) -> None:
        result.append(f"I have got {item}")
        token.advance()

    ConcurrentIterator(queue, scheduler=scheduler).each(have)
    scheduler.run(10)
    queue.push("cars", "elephants")
    scheduler.run(10)

    print(result)


if __name__ == "__main__":
    main()
