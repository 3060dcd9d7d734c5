# secureweb/__init__.py

"""
This is the root package initializer for the `secureweb` module.

SecureWeb bundles the pieces of a hardened web service:

- `path_guard`: resolve untrusted file references inside a fixed directory
- `authorization`: ownership / department checks against IDOR
- `sessions` and `passwords`: the cookie-session login flow
- `middleware_*`: response header policy and request isolation

The FastAPI application itself lives in `secureweb.main`; nothing is imported
here so the guard and the authorization check can be used without loading
the web stack or its settings.
"""
