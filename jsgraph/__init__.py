"""jsgraph: JavaScript call-graph extraction into a property graph."""

__version__ = "0.1.0"
