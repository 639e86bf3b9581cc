"""Entry point for running the bot as a module via python -m academy_bot"""

import asyncio

from academy_bot.verification import main


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
