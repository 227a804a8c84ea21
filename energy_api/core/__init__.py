"""Core de ingesta.

Estructura:
- domain/      → Modelo de muestra y parseo
- derivation   → Potencia y retardo de ingesta
- pipeline/    → Procesamiento por mensaje, cola y workers
- transport/   → Recepción MQTT
- monitoring/  → Estadísticas y métricas
"""
