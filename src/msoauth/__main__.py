"""Entry point for running msoauth as a module.

Usage:
    python -m msoauth --print-token --profile work
    python -m msoauth --help
"""

from dotenv import load_dotenv

load_dotenv()  # MSOAUTH_CONFIG_DIR / MSOAUTH_CONFIG_PATH may come from .env

from msoauth.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
