# File: run.py
import socket
from seismic import create_app, socketio

app = create_app()


def get_ip_address():
    """LAN address sensors and dashboards should use to reach this machine"""
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # UDP connect sends nothing, it only selects the outgoing interface
        probe.connect(("8.8.8.8", 80))
        return probe.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        probe.close()


def print_banner(host_ip, port):
    transport = app.extensions['delivery_transport']
    print("\n" + "="*50)
    print("🚀 SEISMIC SERVER STARTING...")
    print(f" * Sensors POST to  http://{host_ip}:{port}/api/earthquakes/event")
    print(f" * Pipeline mode:   {app.config['PIPELINE_MODE']}")
    print(f" * WhatsApp:        {'simulated' if transport.simulated else 'live'}")
    print("="*50 + "\n")


if __name__ == "__main__":
    port = app.config['SERVER_PORT']
    print_banner(get_ip_address(), port)

    # allow_unsafe_werkzeug=True for the development server
    socketio.run(app, host='0.0.0.0', port=port,
                 debug=app.config['SERVER_DEBUG'], allow_unsafe_werkzeug=True)
