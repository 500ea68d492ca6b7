from importlib.metadata import PackageNotFoundError, version

from proofreader.document import TextDocument
from proofreader.markup import MarkupCodec, annotate_revision
from proofreader.models import DiffOp, Policy, SuggestionRegion
from proofreader.navigation import NavigationCursor, find_next, find_previous
from proofreader.normalize import DiffNormalizer
from proofreader.proofread import Proofreader
from proofreader.resolver import SuggestionResolver, resolve_all, resolve_one
from proofreader.scanner import SuggestionScanner

try:
    __version__ = version("proofreader")
except PackageNotFoundError:
    # Running from a source checkout without an install.
    __version__ = "0.0.0-dev"

__all__ = [
    "DiffNormalizer",
    "DiffOp",
    "MarkupCodec",
    "NavigationCursor",
    "Policy",
    "Proofreader",
    "SuggestionRegion",
    "SuggestionResolver",
    "SuggestionScanner",
    "TextDocument",
    "annotate_revision",
    "find_next",
    "find_previous",
    "resolve_all",
    "resolve_one",
    "__version__",
]
