#!/usr/bin/env python3
"""
chess-duel - Main Entry Point

Runs matches between UCI chess engines and estimates their strength against
Stockfish. This script imports and runs the CLI from the chess_duel package.

Quick Examples:
    # List the engines found in ./engines
    python main.py engines

    # Three-game tournament match
    python main.py match stockfish komodo --preset tournament

    # Calibrate an engine with two games per skill level
    python main.py calibrate komodo --games 2

Requirements:
    - Python 3.11+
    - Engine executables in ./engines (Stockfish is also found on PATH)
"""

import sys

from chess_duel.cli import main

if __name__ == "__main__":
    sys.exit(main())
