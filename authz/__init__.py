"""RBAC relation engine service.

To use the Flask app:
    from authz.flask_app import app

To embed the engine without HTTP:
    from authz.core.engine import AuthzEngine
"""
# flask_app is not imported here: importing it loads settings and builds the app
