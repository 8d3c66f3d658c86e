__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'tusks'
__author__ = 'Eiko Reishin (影皇嶺臣)'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .arguments import *
from .scopes import *
from .schema import *
from .parser import *
from .dispatch import *
from .links import *
from .tasks import *
from .faults import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info",
    "Unset",
)

from .utils import Unset

# Load the exposed API of the descriptors
__all__ += arguments.__all__  # type: ignore[attr-defined]
__all__ += scopes.__all__  # type: ignore[attr-defined]
# Load the exposed API of the compilers
__all__ += schema.__all__  # type: ignore[attr-defined]
__all__ += parser.__all__  # type: ignore[attr-defined]
__all__ += dispatch.__all__  # type: ignore[attr-defined]
__all__ += links.__all__  # type: ignore[attr-defined]
__all__ += tasks.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
