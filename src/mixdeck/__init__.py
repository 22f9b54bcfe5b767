# MixDeck: Personal DJ track library with harmonic mixing suggestions
# Package: mixdeck

__version__ = "1.0.0-dev"
__author__ = "MixDeck Contributors"
__description__ = "Track library, Camelot/BPM mix suggestions and structure timelines"

# Module structure:
#   - mixdeck.analyze   : Key notation parsing, batch ingestion of analysis records
#   - mixdeck.generate  : Harmonic matching, suggestions, structure timeline
#   - mixdeck.library   : Library store (append, delete, import/export, sort)
#   - mixdeck.db        : Persistence backends (memory, JSON files, SQLite)
#   - mixdeck.config    : Configuration management
#   - mixdeck.cli       : Command-line interface
