"""SQLite schema definitions for the InvestIQ backend."""

SCHEMA_SQL = """
-- Users (identity service)
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,  -- uuid4 hex
    email TEXT NOT NULL UNIQUE,
    full_name TEXT,
    password_hash TEXT NOT NULL,  -- pbkdf2_sha256$iterations$salt$digest
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- Tokens revoked by logout, kept until they would have expired anyway
CREATE TABLE IF NOT EXISTS revoked_tokens (
    jti TEXT PRIMARY KEY,
    expires_at INTEGER NOT NULL  -- unix timestamp
);

-- Transactions table
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    amount REAL NOT NULL CHECK (amount >= 0),  -- magnitude; direction is in type
    type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
    category_name TEXT,
    transaction_date TEXT NOT NULL,  -- ISO date
    description TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (user_id) REFERENCES users(id)
);

-- Budgets table
CREATE TABLE IF NOT EXISTS budgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    category_name TEXT NOT NULL,
    amount REAL NOT NULL CHECK (amount >= 0),
    period TEXT,  -- caller-defined label: monthly, weekly, ...
    start_date TEXT,
    end_date TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (user_id) REFERENCES users(id)
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_transactions_user ON transactions(user_id);
CREATE INDEX IF NOT EXISTS idx_transactions_user_date ON transactions(user_id, transaction_date);
CREATE INDEX IF NOT EXISTS idx_budgets_user ON budgets(user_id);
CREATE INDEX IF NOT EXISTS idx_revoked_tokens_expiry ON revoked_tokens(expires_at);
"""
