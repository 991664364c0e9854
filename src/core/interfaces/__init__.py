"""Core interfaces/abstractions.

Why:
- Defines contracts (Protocol) that concrete adapters implement.
- Inverts dependencies: the Core pipeline depends on abstractions, so tests can
  pass in-memory sources instead of HTTP-backed ones.
"""
