#!/usr/bin/env python3
"""Send Input Demo - Shows waiting, cancelling a wait and answering a prompt."""

import asyncio
import sys

from instances import ProcessArguments, WaitCancelledError

PROMPT_PROGRAM = """
import sys
print("What is your name?")
name = sys.stdin.readline().strip()
print(f"Hello, {name}!")
"""


async def demo_send_input() -> None:
    """Demonstrate a wait that gives up without killing the process."""
    print("Send Input Demo")
    print("=" * 50)

    arguments = ProcessArguments(sys.executable, ["-c", PROMPT_PROGRAM])
    arguments.output_data_received += lambda line: print(f"  child> {line}")
    instance = arguments.start()

    try:
        await instance.wait_for_exit_async(timeout=0.5)
    except WaitCancelledError:
        print("Child is waiting for input, answering it...")

    await instance.send_input_async("demo")
    result = await instance.wait_for_exit_async()
    print(f"Exit code: {result.exit_code}")
    print(f"Captured: {list(result.output_data)}")


if __name__ == "__main__":
    asyncio.run(demo_send_input())
