#!/usr/bin/env python3
"""
Bank Ledger Entry Point

Starts the FastAPI server with the bank ledger, loading any saved data from
the configured data directory.
"""

import sys

from bank_ledger.api import run_server
from bank_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Bank Ledger...")
    print(f"Data directory: {config.data_dir}")
    print(f"Lockout after {config.max_login_attempts} failed logins "
          f"for {config.lockout_duration_seconds} seconds")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Bank Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
