"""Protocol event names of the shared chat room."""

# client -> server
USER_JOINED = "user joined"
GET_HISTORY = "get history"
CHAT_MESSAGE = "chat message"
TYPING = "typing"
STOP_TYPING = "stop typing"

# server -> client
CHAT_HISTORY = "chat history"
CHAT_HISTORY_DATA = "chat history data"
USER_LEFT = "user left"
USER_COUNT = "user count"
TYPING_UPDATE = "typing update"
CONNECT_ERROR = "connect_error"
ERROR = "error"

CLIENT_EVENTS = frozenset({USER_JOINED, GET_HISTORY, CHAT_MESSAGE, TYPING, STOP_TYPING})
