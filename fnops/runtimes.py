"""Function runtimes and the details needed to build or run them."""

from dataclasses import dataclass
from enum import StrEnum

from .exceptions import InputException

__all__ = [
    "Runtime",
    "RuntimeInfo",
    "get_runtime",
    "container_env",
    "DEFAULT_RUNTIME",
    "SERVER_PORT",
]

SERVER_PORT = "8080"
"""Port the function server listens on inside the container."""

KUBELESS_VOLUME = "$(KUBELESS_INSTALL_VOLUME)"


class Runtime(StrEnum):
    """Supported function runtimes."""

    NODEJS12 = "nodejs12"
    NODEJS10 = "nodejs10"
    PYTHON38 = "python38"


DEFAULT_RUNTIME = Runtime.NODEJS12


@dataclass(frozen=True)
class RuntimeInfo:
    """Details about a runtime."""

    runtime: Runtime
    """The runtime described."""

    image: str
    """The image used to run functions locally."""

    source_file: str
    """Default name of the inline handler source file."""

    deps_file: str
    """Default name of the inline dependencies file."""

    path_env: str
    """Environment variable pointing the runtime at installed dependencies."""

    debug_port: str
    """Port the runtime debugger listens on."""

    debug_option: str | None = None
    """Runtime option enabling the debugger, if supported."""

    commands: tuple[str, ...] = ()
    """Commands run in the container to install dependencies and serve."""


_NODE_COMMANDS = ("/kubeless-npm-install.sh", "node kubeless.js")

RUNTIMES: dict[Runtime, RuntimeInfo] = {
    Runtime.NODEJS12: RuntimeInfo(
        runtime=Runtime.NODEJS12,
        image="eu.gcr.io/kyma-project/function-runtime-nodejs12:cc7dd53f",
        source_file="handler.js",
        deps_file="package.json",
        path_env=f"NODE_PATH={KUBELESS_VOLUME}/node_modules",
        debug_port="9229",
        debug_option="--inspect=0.0.0.0",
        commands=_NODE_COMMANDS,
    ),
    Runtime.NODEJS10: RuntimeInfo(
        runtime=Runtime.NODEJS10,
        image="eu.gcr.io/kyma-project/function-runtime-nodejs10:cc7dd53f",
        source_file="handler.js",
        deps_file="package.json",
        path_env=f"NODE_PATH={KUBELESS_VOLUME}/node_modules",
        debug_port="9229",
        debug_option="--inspect=0.0.0.0",
        commands=_NODE_COMMANDS,
    ),
    Runtime.PYTHON38: RuntimeInfo(
        runtime=Runtime.PYTHON38,
        image="eu.gcr.io/kyma-project/function-runtime-python38:cc7dd53f",
        source_file="handler.py",
        deps_file="requirements.txt",
        path_env=(
            f"PYTHONPATH={KUBELESS_VOLUME}/lib.python3.8/site-packages:{KUBELESS_VOLUME}"
        ),
        debug_port="5678",
    ),
}


def get_runtime(name: str | None) -> RuntimeInfo:
    """Return details about the named runtime, the default when not set."""
    if not name:
        return RUNTIMES[DEFAULT_RUNTIME]
    try:
        return RUNTIMES[Runtime(name)]
    except ValueError as err:
        raise InputException(
            f"Invalid runtime '{name}', expected one of {[str(r) for r in Runtime]}"
        ) from err


def container_env(info: RuntimeInfo, debug: bool = False) -> list[str]:
    """Environment variables for running a function of the runtime locally."""
    env = [
        f"FUNC_RUNTIME={info.runtime}",
        "FUNC_HANDLER=main",
        "MOD_NAME=handler",
        f"FUNC_PORT={SERVER_PORT}",
        info.path_env,
    ]
    if debug and info.debug_option:
        env.append(f"NODE_OPTIONS={info.debug_option}")
    return env
