"""
Backend services for the form design engine.

- Builder: structural edits producing new Form values
- Resolver: cascading options, conditional visibility, reorder safety
- Layout: greedy pagination into fixed-height preview screens
- Navigation: page-flow runtime driven by button fields
- Repository: JSON file storage with version snapshots
"""

from formdesign.services.builder import BuilderService
from formdesign.services.integrity import check_integrity
from formdesign.services.layout import LayoutService
from formdesign.services.navigation import NavigationRuntime
from formdesign.services.options import OptionsFetcher
from formdesign.services.repository import DesignRepository
from formdesign.services.resolver import DependencyResolver
from formdesign.services.submission import ValueValidator, build_payload

__all__ = [
    "BuilderService",
    "DependencyResolver",
    "DesignRepository",
    "LayoutService",
    "NavigationRuntime",
    "OptionsFetcher",
    "ValueValidator",
    "build_payload",
    "check_integrity",
]
