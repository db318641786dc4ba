"""Failure taxonomy for the lesson video pipeline.

Every error carries a ``kind`` tag and a ``retryable`` flag. The attempt runner
turns raised errors into a tagged result and decides terminal vs retry from
these two attributes alone.
"""


class ErrorKind:
    VALIDATION = "validation"
    ENVIRONMENT = "environment"
    KEY_WRITE = "key_write"
    TRANSCODE_TIMEOUT = "transcode_timeout"
    TRANSCODE_EXECUTION = "transcode_execution"
    VERIFICATION = "verification"
    IO = "io"
    BUSY = "busy"
    INTERNAL = "internal"


class LessonVideoError(Exception):
    kind = ErrorKind.INTERNAL
    retryable = False


# -----------------------------------------------------
# Preconditions (terminal)
# -----------------------------------------------------
class ValidationError(LessonVideoError):
    kind = ErrorKind.VALIDATION


class LessonNotFoundError(ValidationError):
    pass


class MissingSourceError(ValidationError):
    pass


class EmptySourceError(ValidationError):
    pass


class EncoderUnavailableError(LessonVideoError):
    kind = ErrorKind.ENVIRONMENT


# -----------------------------------------------------
# Retryable
# -----------------------------------------------------
class OutputDirectoryError(LessonVideoError):
    kind = ErrorKind.IO
    retryable = True


class KeyWriteError(LessonVideoError):
    kind = ErrorKind.KEY_WRITE
    retryable = True


class TranscodeTimeoutError(LessonVideoError):
    kind = ErrorKind.TRANSCODE_TIMEOUT
    retryable = True

    def __init__(self, message: str, *, timeout: float, stderr: str = ""):
        super().__init__(message)
        self.timeout = timeout
        self.stderr = stderr


class TranscodeExecutionError(LessonVideoError):
    kind = ErrorKind.TRANSCODE_EXECUTION
    retryable = True

    def __init__(self, message: str, *, returncode: int, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class VerificationError(LessonVideoError):
    kind = ErrorKind.VERIFICATION
    retryable = True


class MissingPlaylistError(VerificationError):
    pass


class EmptyPlaylistError(VerificationError):
    pass


class IncompletePlaylistError(VerificationError):
    pass


class NoSegmentsError(VerificationError):
    pass


class MissingSegmentError(VerificationError):
    pass


class KeyFileSizeError(VerificationError):
    pass


class LessonBusyError(LessonVideoError):
    kind = ErrorKind.BUSY
    retryable = True
