"""Utility modules for ChainWeaver."""

from chainweaver.utils.locks import AccountLock, get_account_lock

__all__ = ["AccountLock", "get_account_lock"]
