"""smart-node: run arbitrary source text as JavaScript via an LLM translation."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("smart-node")
except PackageNotFoundError:
    __version__ = "dev"
