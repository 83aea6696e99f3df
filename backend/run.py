import logging

from rps_arena import create_app, socketio

app = create_app()

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, host='0.0.0.0', port=app.config['PORT'], debug=True)
