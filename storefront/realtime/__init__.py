"""
Real-time chat package.

Presence and typing tracking, message history, the chat coordinator and
the WebSocket handler for the shared chat room.
"""
