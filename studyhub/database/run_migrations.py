import os
import sys
import subprocess
from pathlib import Path
from urllib.parse import quote_plus

from dotenv import load_dotenv

project_root = Path(__file__).parent

load_dotenv()

db_user = os.getenv('DATABASE_USER')
db_password = os.getenv('DATABASE_PASSWORD')
db_connection_url = os.getenv('DATABASE_URL')

if not all([db_user, db_password, db_connection_url]):
    print("ERROR: DATABASE_USER, DATABASE_PASSWORD and DATABASE_URL must be set")
    sys.exit(1)

db_url = f"postgresql://{db_user}:{quote_plus(db_password)}@{db_connection_url}"

migrations_path = project_root / 'migrations'

if not migrations_path.exists():
    print(f"ERROR: Migrations directory not found: {migrations_path}")
    sys.exit(1)

command = sys.argv[1] if len(sys.argv) > 1 else 'apply'
if command not in ('apply', 'list'):
    print(f"Usage: {sys.argv[0]} [apply|list]")
    sys.exit(2)

print("\nMigration Status:")
subprocess.run([
    'yoyo',
    'list',
    '--database', db_url,
    str(migrations_path)
], env={**os.environ, 'PYTHONPATH': str(project_root)})

if command == 'list':
    sys.exit(0)

print(f"Running yoyo {command}...")

result = subprocess.run([
    'yoyo',
    command,
    '--batch',
    '--database', db_url,
    str(migrations_path)
], env={**os.environ, 'PYTHONPATH': str(project_root)})

if result.returncode == 0:
    print(f"\nyoyo {command} completed!")
else:
    print(f"\nyoyo {command} failed with exit code {result.returncode}")

sys.exit(result.returncode)
