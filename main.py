from rich.pretty import pprint

from argosy import *

commands = Commander(name="demo", shell=True)


@commands.command
def add(*numbers: int) -> int:
    return sum(numbers)


@commands.command(from_context(lambda context: context.value("user", "guest"), type=str))
def greet(name: str) -> str:
    return "hello " + name


if __name__ == '__main__':
    pprint(commands.invoke())
