from last_standing import create_app, socketio
from last_standing.services.games.scheduler import start_scheduler

app = create_app()

if __name__ == '__main__':
    start_scheduler(app)
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True, use_reloader=False)
