import os

from whosaid import create_app, socketio

app = create_app()

if __name__ == '__main__':
    host = os.environ.get('WHOSAID_HOST', '127.0.0.1')
    port = int(os.environ.get('WHOSAID_PORT', '5000'))
    socketio.run(app, host=host, port=port, debug=os.environ.get('FLASK_DEBUG', '1') == '1')
