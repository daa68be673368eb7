# Form Design Engine Backend
"""
Dynamic Form Definition & Page-Flow Engine

This package implements the administration form designer: a polymorphic
field model organised as Pages -> Sections -> Fields, and the services that
edit, check, paginate and run those designs.

Architecture:
- Builder Service: structural edits producing a new, still-valid Form
- Dependency Resolver: cascading options, conditional visibility, reorder safety
- Layout Service: bounded-height screen pagination for fullscreen preview
- Navigation Runtime: page-to-page state machine with persistence side effects
"""

__version__ = "1.0.0"
