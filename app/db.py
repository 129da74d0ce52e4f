"""
Database initialization and schema management.

This module is responsible for:
- Defining and initializing the database schema (tables, indexes, the full-text
  index over stores and the triggers that keep it in sync).
- Exposing the global `DatabaseManager` instance used everywhere else.
"""
import os
from flask import current_app
from app.database_manager import DatabaseManager

# --- Global DatabaseManager Instance ---
# Used for all database operations throughout the application.
db_manager = DatabaseManager()


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,              -- Stored lower-cased; used as the login name
    name TEXT NOT NULL,
    password TEXT NOT NULL,                  -- Werkzeug password hash
    reset_password_token TEXT,
    reset_password_expires TEXT,             -- ISO timestamp (UTC)
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS stores (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    slug TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL DEFAULT '',
    address TEXT NOT NULL,
    lng REAL NOT NULL CHECK (lng BETWEEN -180 AND 180),
    lat REAL NOT NULL CHECK (lat BETWEEN -90 AND 90),
    photo TEXT,                              -- Filename inside UPLOAD_FOLDER
    author_id INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (author_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS store_tags (
    store_id INTEGER NOT NULL,
    tag TEXT NOT NULL,
    PRIMARY KEY (store_id, tag),
    FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS reviews (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    author_id INTEGER NOT NULL,
    store_id INTEGER NOT NULL,
    text TEXT NOT NULL,
    rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
    created_at TEXT NOT NULL,
    FOREIGN KEY (author_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS hearts (
    user_id INTEGER NOT NULL,
    store_id INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (user_id, store_id),
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (store_id) REFERENCES stores(id) ON DELETE CASCADE
);

-- Full-text index over store name and description (external content table).
CREATE VIRTUAL TABLE IF NOT EXISTS stores_fts USING fts5(
    name, description,
    content='stores', content_rowid='id',
    tokenize='porter unicode61'
);

CREATE TRIGGER IF NOT EXISTS stores_fts_ai AFTER INSERT ON stores BEGIN
    INSERT INTO stores_fts(rowid, name, description) VALUES (new.id, new.name, new.description);
END;

CREATE TRIGGER IF NOT EXISTS stores_fts_ad AFTER DELETE ON stores BEGIN
    INSERT INTO stores_fts(stores_fts, rowid, name, description) VALUES ('delete', old.id, old.name, old.description);
END;

CREATE TRIGGER IF NOT EXISTS stores_fts_au AFTER UPDATE ON stores BEGIN
    INSERT INTO stores_fts(stores_fts, rowid, name, description) VALUES ('delete', old.id, old.name, old.description);
    INSERT INTO stores_fts(rowid, name, description) VALUES (new.id, new.name, new.description);
END;

CREATE INDEX IF NOT EXISTS idx_stores_created_at ON stores (created_at);
CREATE INDEX IF NOT EXISTS idx_stores_author_id ON stores (author_id);
CREATE INDEX IF NOT EXISTS idx_stores_lat_lng ON stores (lat, lng);
CREATE INDEX IF NOT EXISTS idx_store_tags_tag ON store_tags (tag);
CREATE INDEX IF NOT EXISTS idx_reviews_store_id ON reviews (store_id);
CREATE INDEX IF NOT EXISTS idx_hearts_store_id ON hearts (store_id);
"""


def init_db():
    """
    Initializes the database by creating all tables, indexes and triggers if they
    don't already exist. Safe to run on every start-up.
    """
    logger = current_app.logger
    db_dir = os.path.dirname(os.path.abspath(current_app.config['DATABASE']))
    os.makedirs(db_dir, exist_ok=True)

    logger.info("Initializing database schema via DatabaseManager...")
    try:
        db_manager.execute_script(SCHEMA)
        logger.info("Database schema initialization process complete.")
    except Exception as e:
        logger.critical(f"CRITICAL FAILURE: Database schema initialization failed: {e}", exc_info=True)
        raise
