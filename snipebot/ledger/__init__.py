from .base import LedgerCodec, LedgerReader, NotificationStream, TransactionSubmitter, load_codec

__all__ = ["LedgerCodec", "LedgerReader", "NotificationStream", "TransactionSubmitter", "load_codec"]
