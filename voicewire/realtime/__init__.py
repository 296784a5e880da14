"""
Realtime client core.

- codec: JSON event encoding/decoding
- transport: WebSocket connection with heartbeat and reconnection
- audio_buffer: outbound audio chunking
- tool_bridge: server-requested tool calls
- feeds: publish-subscribe notification feeds
- session: the conversation session controller
"""
