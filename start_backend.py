"""
Flask Backend Launcher
Starts the AIMS-Lite API server
"""
import sys
import os
import subprocess
from pathlib import Path
from dotenv import load_dotenv

def main():
    """Launch the Flask backend"""
    root_dir = Path(__file__).parent.absolute()
    load_dotenv(dotenv_path=root_dir / '.env')
    backend_dir = root_dir / 'backend'
    os.chdir(backend_dir)
    host = os.environ.get('AIMS_HOST', '127.0.0.1')
    port = os.environ.get('AIMS_PORT', '5000')
    os.environ['FLASK_APP'] = 'app:create_app'
    os.environ['PYTHONPATH'] = str(backend_dir)
    command = [sys.executable, '-m', 'flask', 'run', '--host', host, '--port', port]
    try:
        subprocess.run(command, check=True)
    except subprocess.CalledProcessError as e:
        sys.exit(e.returncode)
    except KeyboardInterrupt:
        sys.exit(0)
if __name__ == '__main__':
    main()
