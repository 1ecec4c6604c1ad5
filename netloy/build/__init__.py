"""Package builders, one per installer format."""

from netloy.build.builder import BuildState, PackageBuilder
from netloy.build.context import BuildContext
from netloy.build.factory import BUILDERS, PackageBuilderFactory
from netloy.build.options import BuildOptions

__all__ = [
    "BUILDERS",
    "BuildContext",
    "BuildOptions",
    "BuildState",
    "PackageBuilder",
    "PackageBuilderFactory",
]
