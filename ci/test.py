"""
Run the test suite in a clean Python container.

Run with:
    python ci/test.py
or:
    scabbard run ci/test.py
"""

import scope  # noqa: F401 - registers with_python

from scabbard import ExecutionContext, enqueue, is_main, run_pipelines_if_main
from scabbard.environments import DockerEnvironment


async def tests(context: ExecutionContext) -> None:
    env = context.inject("with_python", DockerEnvironment)
    try:
        await env.exec_checked(["pip", "install", "--quiet", "-e", ".[test]"])
        output = await env.exec_checked(["pytest", "-q"])
        print(output.stdout)
    finally:
        await env.stop()


enqueue("tests", tests)

run_pipelines_if_main(is_main(__name__))
