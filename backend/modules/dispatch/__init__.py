"""Dispatch package.

Submodules expose the region queue (``modules.dispatch.queue``), the probe and its
classifier (``modules.dispatch.probe``, ``modules.dispatch.classifier``), the pusher
and worker (``modules.dispatch.pusher``, ``modules.dispatch.worker``), tick storage
helpers (``modules.dispatch.recorder``) and Celery tasks (``modules.dispatch.tasks``).
Import concretely from those modules; the package itself stays import-light so the
Django app registry can load it before models are ready.
"""

__all__ = [
    "classifier",
    "probe",
    "pusher",
    "queue",
    "recorder",
    "tasks",
    "worker",
]
