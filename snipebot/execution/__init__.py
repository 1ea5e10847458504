from .manager import CommitResult, CommitSequencer, CommitStatus

__all__ = ["CommitResult", "CommitSequencer", "CommitStatus"]
