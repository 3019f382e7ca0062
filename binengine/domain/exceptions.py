from __future__ import annotations


class DomainError(Exception):
    """Base para erros de dominio."""


class InvalidParameterError(DomainError):
    """Parametros invalidos (preco negativo, bin_step nao positivo, range invertido)."""


class InvalidPoolError(DomainError):
    """Pool solicitada nao existe."""


class InvalidPoolAccountError(InvalidPoolError):
    """Conta da pool nao pode ser interpretada como pool DLMM valida."""


class PositionNotFoundError(DomainError):
    """Posicao solicitada nao existe."""


class LookupFailedError(DomainError):
    """Falha transitoria de I/O ao consultar dados de origem."""


class RateLimitedError(LookupFailedError):
    """Origem sinalizou rate limit (429); pode ser repetido com backoff."""
