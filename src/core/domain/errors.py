"""Errores del dominio.

Por qué una jerarquía propia:
- La CLI captura `NeuPoolError` en el borde y decide cómo presentarlo.
- Cada tipo indica si el usuario puede reintentar sin perder datos.
"""

from __future__ import annotations


class NeuPoolError(Exception):
    """Base de todos los errores de la aplicación."""

    retryable: bool = False


class ConfigurationError(NeuPoolError):
    """Falta la credencial (API key) del servicio de razonamiento."""

    retryable = True


class RecommendationError(NeuPoolError):
    """El servicio de razonamiento falló o devolvió una respuesta inválida."""

    retryable = True


class PrecommitError(NeuPoolError):
    """Estado local inválido al confirmar un registro (sin piscina/usuario)."""


class ValidationError(NeuPoolError):
    """Datos de formulario incompletos o inconsistentes."""


class AuthorizationError(ValidationError):
    """El rol o las piscinas asignadas no permiten la acción."""


class StateLoadError(NeuPoolError):
    """El snapshot persistido no se puede leer o tiene una forma incompatible."""
