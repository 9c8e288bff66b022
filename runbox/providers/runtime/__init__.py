"""Container runtime implementations and interfaces."""

from runbox.providers.runtime.base import WAIT_NOT_RUNNING, ContainerRuntime
from runbox.providers.runtime.docker import DockerRuntime

__all__ = ["ContainerRuntime", "DockerRuntime", "WAIT_NOT_RUNNING"]
