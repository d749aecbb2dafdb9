"""
DashScope backend adapters.

Each module wraps one DashScope SDK entry point; the SDK is imported
lazily inside invoke() so selecting one backend never imports the others.
"""
