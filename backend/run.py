# File: backend/run.py
"""Application entry point."""
import os
import click
from checkin import create_app
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Create Flask app
app = create_app(os.getenv('FLASK_ENV', 'development'))

@app.cli.command()
def sweep_tokens():
    """Evict expired check-in tokens from this process."""
    evicted = app.extensions['checkin'].qr.sweep()
    click.echo(f'Evicted {evicted} expired token(s)')

if __name__ == '__main__':
    # Development server
    port = int(os.environ.get('PORT', 5000))
    host = os.environ.get('HOST', '127.0.0.1')
    debug = os.environ.get('FLASK_ENV') == 'development'
    
    app.run(host=host, port=port, debug=debug)
