"""prompt-commons - hybrid keyword and vector search for shared AI prompt experiments."""

# Package version - updated by release automation
__version__ = "0.4.0"
