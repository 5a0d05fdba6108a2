"""WebApp Updater — development-time web app patching by file drop.

Watches a shared documents folder for dropped folders named after a
loaded web app and gently merges their contents into that app's local
storage.  For development only; refuses to run in production mode.
"""

__version__ = "1.0.0"
__app_name__ = "WebApp Updater"
