# core/errors.py

from __future__ import annotations


class ListingGeneratorError(Exception):
    """Base class for every error the generator reports to its caller."""

    # 提供方拒绝了 key，调用方需要重新输入
    invalidates_credentials = False
    # 远程 PHP 脚本异常，调用方应展示修复指南
    show_remediation = False

    def __init__(self, message: str = "", *, show_remediation: bool | None = None):
        super().__init__(message)
        self.message = message
        if show_remediation is not None:
            self.show_remediation = show_remediation


class ValidationError(ListingGeneratorError):
    """Bad caller input; nothing was sent over the network."""


# --- AI provider ---

class GenerationError(ListingGeneratorError):
    """Provider call failed or its output could not be parsed."""


class MissingCredentialsError(GenerationError):
    invalidates_credentials = True


class InvalidCredentialsError(GenerationError):
    invalidates_credentials = True


class QuotaExceededError(GenerationError):
    """Rate or billing limit; the key itself is still trusted."""


class NoImageProducedError(GenerationError):
    pass


# --- client-side image processing ---

class ImageProcessingError(ListingGeneratorError):
    pass


class DecodeError(ImageProcessingError):
    pass


class RenderTargetError(ImageProcessingError):
    pass


# --- save endpoint ---

class SaveError(ListingGeneratorError):
    pass


class IncompleteDataError(SaveError):
    pass


class NetworkError(SaveError):
    """Request never got an HTTP answer (DNS, refused connection, TLS, timeout)."""


class ServerScriptError(SaveError):
    show_remediation = True


class ServerReportedError(SaveError):
    def __init__(self, message: str = "", *, status_code: int | None = None, show_remediation: bool | None = None):
        super().__init__(message, show_remediation=show_remediation)
        self.status_code = status_code


# --- categories endpoint ---

class CategoryFetchError(ListingGeneratorError):
    pass
