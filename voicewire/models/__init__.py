"""
Data models for the realtime client.

- openai_api: Realtime API events, session configuration and conversation items
- tool_models: tool descriptors sent in session.update
- conversation: connection and conversation lifecycle states
"""
