"""Schema de la base de donnees SQLite du suivi des habilitations.

Gere :
- L'organigramme (divisions, services, sections, equipes)
- Les employes
- Les habilitations (HT / ST)
"""

import logging
import sqlite3
from pathlib import Path
from contextlib import contextmanager
from typing import Optional

logger = logging.getLogger("habilitations_tracker.database")

SCHEMA_SQL = """
-- Organigramme : un nom est unique parmi les freres d'un meme parent
CREATE TABLE IF NOT EXISTS divisions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS services (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    division_id INTEGER NOT NULL REFERENCES divisions(id) ON DELETE CASCADE,
    created_at TEXT DEFAULT (datetime('now')),
    UNIQUE(name, division_id)
);

CREATE TABLE IF NOT EXISTS sections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    service_id INTEGER NOT NULL REFERENCES services(id) ON DELETE CASCADE,
    created_at TEXT DEFAULT (datetime('now')),
    UNIQUE(name, service_id)
);

CREATE TABLE IF NOT EXISTS equipes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    section_id INTEGER NOT NULL REFERENCES sections(id) ON DELETE CASCADE,
    created_at TEXT DEFAULT (datetime('now')),
    UNIQUE(name, section_id)
);

-- Employes (matricule = cle naturelle immuable)
CREATE TABLE IF NOT EXISTS employes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    matricule TEXT UNIQUE NOT NULL,
    prenom TEXT NOT NULL,
    nom TEXT NOT NULL,
    division_id INTEGER NOT NULL REFERENCES divisions(id) ON DELETE CASCADE,
    service_id INTEGER NOT NULL REFERENCES services(id) ON DELETE CASCADE,
    section_id INTEGER NOT NULL REFERENCES sections(id) ON DELETE CASCADE,
    equipe_id INTEGER REFERENCES equipes(id) ON DELETE CASCADE,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

-- Habilitations : au plus une par employe et par famille
CREATE TABLE IF NOT EXISTS habilitations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    employe_id INTEGER NOT NULL REFERENCES employes(id) ON DELETE CASCADE,
    famille TEXT NOT NULL CHECK (famille IN ('HT', 'ST')),
    codes TEXT NOT NULL,
    numero TEXT,
    date_validation TEXT NOT NULL,
    date_expiration TEXT NOT NULL,
    document_ref TEXT,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now')),
    UNIQUE(employe_id, famille)
);

-- Index pour performances
CREATE INDEX IF NOT EXISTS idx_employes_division ON employes(division_id);
CREATE INDEX IF NOT EXISTS idx_employes_service ON employes(service_id);
CREATE INDEX IF NOT EXISTS idx_services_division ON services(division_id);
CREATE INDEX IF NOT EXISTS idx_sections_service ON sections(service_id);
CREATE INDEX IF NOT EXISTS idx_equipes_section ON equipes(section_id);
CREATE INDEX IF NOT EXISTS idx_habilitations_employe ON habilitations(employe_id);
CREATE INDEX IF NOT EXISTS idx_habilitations_expiration ON habilitations(date_expiration);
"""


class Database:
    """Gestionnaire de base de donnees SQLite.

    L'instance est creee par le point d'entree (CLI ou application web)
    et transmise explicitement a chaque composant.
    """

    def __init__(self, db_path: Path | str = "habilitations.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with self.connection() as conn:
            conn.executescript(SCHEMA_SQL)
        logger.debug("Schema initialise : %s", self.db_path)

    @contextmanager
    def connection(self):
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self, conn: Optional[sqlite3.Connection] = None):
        """Unite de travail atomique.

        Si ``conn`` est fourni, l'appelant possede deja la transaction : les
        operations s'y joignent et c'est lui qui valide ou annule. Sinon une
        transaction ``BEGIN IMMEDIATE`` est ouverte, ce qui serialise les
        ecrivains (y compris la creation des noeuds de l'organigramme).
        """
        if conn is not None:
            yield conn
            return
        with self.connection() as nouvelle:
            nouvelle.execute("BEGIN IMMEDIATE")
            yield nouvelle

    @contextmanager
    def lecture(self, conn: Optional[sqlite3.Connection] = None):
        """Connexion de lecture : celle de l'appelant si fournie, sinon une nouvelle."""
        if conn is not None:
            yield conn
            return
        with self.connection() as nouvelle:
            yield nouvelle

    def execute(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchall()

    def execute_insert(self, sql: str, params: tuple = ()) -> int:
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.lastrowid
