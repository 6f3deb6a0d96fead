"""
Development overlay: DEBUG on, eager Celery, in-process dispatch queue.

Set ``DISPATCH_QUEUE_BACKEND=redis`` to run the pipeline against a local Redis.
"""

from modules.core.settings import build_dispatch_config, build_security_settings, configure_sentry

from app.settings_base import *  # noqa: F403, F401

DEBUG = True

SECRET_KEY = env("SECRET_KEY", default="django-insecure-dev-key-CHANGE-ME-IN-PRODUCTION")  # noqa: F405
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1", "testserver"])  # noqa: F405
SIMPLE_JWT["SIGNING_KEY"] = SECRET_KEY  # noqa: F405

globals().update(build_security_settings(env, production=False))  # noqa: F405

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

globals().update(build_dispatch_config(env, default_backend="memory"))  # noqa: F405

LOGGING["loggers"]["dispatch.audit"]["level"] = "DEBUG"  # noqa: F405

SENTRY = configure_sentry(env, default_environment="development")  # noqa: F405
