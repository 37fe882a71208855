"""Operations (rsync transfers, hook merging, push/pull)"""
from .transfer import Direction, TransferSpec, build_transfer, validate_pull_target, execute_transfer
from .hooks import merge_hooks, hook_script_content
from .sync import sync_push, sync_pull, reinject_hooks

__all__ = [
    "Direction", "TransferSpec", "build_transfer", "validate_pull_target", "execute_transfer",
    "merge_hooks", "hook_script_content",
    "sync_push", "sync_pull", "reinject_hooks",
]
