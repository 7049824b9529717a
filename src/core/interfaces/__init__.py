"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- La sesión de medición depende del contrato, no del SDK de IA.
"""
