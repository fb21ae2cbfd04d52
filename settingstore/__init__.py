"""
settingstore - typed, cached and audited key/value settings.

Global settings, per-user settings and the change history are stored
through SQLAlchemy; see settingstore.services for the public managers.
"""

__version__ = "0.1.0"
