from flask_socketio import SocketIO, emit, join_room
from flask import request
from auth.jwt_handler import verify_token
from utils.helpers import utcnow


class WebSocketService:
    """Pushes match events to the counterpart's open Mini App session"""

    def __init__(self, app, logger, allowed_origins=None):
        self.app = app
        self.logger = logger
        self.sessions = {}
        self.socketio = SocketIO(
            app,
            cors_allowed_origins=allowed_origins or [],
            async_mode='threading',
            ping_timeout=60,
            ping_interval=25
        )
        self.setup_handlers()

    @staticmethod
    def room_for(user_id):
        return f"user_{user_id}"

    def setup_handlers(self):
        @self.socketio.on('connect')
        def handle_connect(auth=None):
            token = (auth or {}).get('token') if isinstance(auth, dict) else None
            token = token or request.args.get('token')
            payload = verify_token(token) if token else None
            if not payload or not payload.get('user_id'):
                self.logger.warning(f"WebSocket connection rejected: {request.sid}")
                return False

            user_id = payload['user_id']
            self.sessions[request.sid] = user_id
            join_room(self.room_for(user_id))
            emit('connection_established', {'status': 'connected', 'user_id': user_id})
            self.logger.info(f"WebSocket connected: {user_id}")
            return True

        @self.socketio.on('disconnect')
        def handle_disconnect(*args):
            user_id = self.sessions.pop(request.sid, None)
            self.logger.info(f"WebSocket disconnected: {user_id or request.sid}")

    def notify_new_match(self, user_id, event):
        """Best effort: a missed push is recovered from the match list"""
        try:
            payload = dict(event, timestamp=utcnow().isoformat())
            self.socketio.emit(event.get('type', 'match'), payload, to=self.room_for(user_id))
        except Exception as e:
            self.logger.error(f"Failed to send match notification: {e}")

    def run(self, host='0.0.0.0', port=5000, debug=False):
        self.socketio.run(self.app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=True)
