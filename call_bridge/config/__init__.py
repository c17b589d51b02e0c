"""
Configuration module for the call bridge.

Key components:
- constants: protocol event names, message types, audio formats and the defaults
  applied when a call does not supply its own agent parameters.
- logging_config: console and rotating-file logging for the ``call_bridge`` logger.

Environment-driven settings (API key, agent id, output format) are read with
``os.getenv`` by the modules that use them, after ``main`` has loaded ``.env``.
"""
