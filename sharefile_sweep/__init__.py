"""sharefile-sweep: delete disabled ShareFile users and reassign what they owned.

Discovers disabled Employee and Client accounts, checkpoints them to CSV,
resolves an administrator to inherit items and group memberships, then
deletes each checkpointed account.  Deletion can run dry, prompt per user,
or auto-confirm, and can resume from existing checkpoints.
"""

__version__ = "0.3.1"
