"""
Boundaries to external systems and their local implementations.

The pipeline talks to the invoice store, the artifact store and the run
lock only through the abstract classes below, so the transformation itself
stays bytes-in/bytes-out. Local adapters are provided for the CLI, the API
and tests:
- InMemoryInvoiceStore / JsonInvoiceStore
- InMemoryArtifactStore / FileSystemArtifactStore
- KeyedRunLock
"""

import json
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

from .config import logger
from .schemas import InvoiceRecord


# ============================================================================
# Invoice Store
# ============================================================================

class InvoiceStore(ABC):
    """
    Store of agencies, clients and canonical invoices.

    Invoices are keyed by (normalized invoice number, country).
    """

    @abstractmethod
    def ensure_agency(self, name: str, country: str) -> str:
        """Return the id of the agency, creating it when missing."""
        pass

    @abstractmethod
    def ensure_client(self, name: str, country: str) -> str:
        """Return the id of the client, creating it when missing."""
        pass

    @abstractmethod
    def upsert_invoice(self, record: InvoiceRecord) -> bool:
        """
        Insert the invoice or update the existing one with the same key.

        Returns:
            True if a new invoice was inserted, False if one was updated
        """
        pass

    @abstractmethod
    def assign_document_number(self, invoice_number: str, country: str, document_id: str) -> bool:
        """
        Record the ledger document id on an existing invoice.

        Returns:
            True if the invoice exists and was updated
        """
        pass

    @abstractmethod
    def credit_note_agencies(self, country: str) -> frozenset[str]:
        """Names of agencies in `country` that receive credit notes."""
        pass


class InMemoryInvoiceStore(InvoiceStore):
    """Invoice store held in dictionaries."""

    def __init__(self):
        self.agencies: Dict[tuple[str, str], Dict[str, Any]] = {}
        self.clients: Dict[tuple[str, str], Dict[str, Any]] = {}
        self.invoices: Dict[tuple[str, str], Dict[str, Any]] = {}

    def ensure_agency(self, name: str, country: str) -> str:
        key = (name, country.lower())
        if key not in self.agencies:
            self.agencies[key] = {
                "id": str(uuid.uuid4()),
                "name": name,
                "country": key[1],
                "receives_credit_note": False,
            }
            self._changed()
        return self.agencies[key]["id"]

    def ensure_client(self, name: str, country: str) -> str:
        key = (name, country.lower())
        if key not in self.clients:
            self.clients[key] = {"id": str(uuid.uuid4()), "name": name, "country": key[1]}
            self._changed()
        return self.clients[key]["id"]

    def set_receives_credit_note(self, name: str, country: str, receives: bool = True) -> None:
        """Mark an agency as eligible (or not) for credit notes, creating it if needed."""
        self.ensure_agency(name, country)
        self.agencies[(name, country.lower())]["receives_credit_note"] = receives
        self._changed()

    def upsert_invoice(self, record: InvoiceRecord) -> bool:
        data = record.model_dump()
        existing = self.invoices.get(record.key)

        if existing is not None:
            if data.get("assigned_invoice_number") is None:
                data["assigned_invoice_number"] = existing.get("assigned_invoice_number")
            existing.update(data)
            self._changed()
            return False

        data["id"] = str(uuid.uuid4())
        self.invoices[record.key] = data
        self._changed()
        return True

    def assign_document_number(self, invoice_number: str, country: str, document_id: str) -> bool:
        existing = self.invoices.get((invoice_number, country.lower()))
        if existing is None:
            return False
        existing["assigned_invoice_number"] = document_id
        self._changed()
        return True

    def credit_note_agencies(self, country: str) -> frozenset[str]:
        country = country.lower()
        return frozenset(
            agency["name"]
            for agency in self.agencies.values()
            if agency["country"] == country and agency["receives_credit_note"]
        )

    def get_invoice(self, invoice_number: str, country: str) -> Optional[InvoiceRecord]:
        data = self.invoices.get((invoice_number, country.lower()))
        if data is None:
            return None
        return InvoiceRecord.model_validate(data)

    def _changed(self) -> None:
        """Hook called after every mutation."""
        pass


class JsonInvoiceStore(InMemoryInvoiceStore):
    """
    Invoice store persisted to a JSON file after every change.

    Used by the CLI so that repeated runs upsert into the same records.
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return

        with open(self.path, "r", encoding="utf-8") as f:
            payload = json.load(f)

        for agency in payload.get("agencies", []):
            self.agencies[(agency["name"], agency["country"])] = agency
        for client in payload.get("clients", []):
            self.clients[(client["name"], client["country"])] = client
        for invoice in payload.get("invoices", []):
            self.invoices[(invoice["invoice_number"], invoice["country"])] = invoice

        logger.info(f"Loaded invoice store from {self.path} ({len(self.invoices)} invoices)")

    def _changed(self) -> None:
        payload = {
            "agencies": list(self.agencies.values()),
            "clients": list(self.clients.values()),
            "invoices": list(self.invoices.values()),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)


# ============================================================================
# Artifact Store
# ============================================================================

class ArtifactStore(ABC):
    """
    Storage for generated workbooks.

    Saving under an existing name replaces the previous artifact.
    """

    @abstractmethod
    def save(self, name: str, data: bytes) -> None:
        pass

    @abstractmethod
    def load(self, name: str) -> Optional[bytes]:
        """Return the artifact bytes, or None if it does not exist."""
        pass

    @abstractmethod
    def exists(self, name: str) -> bool:
        pass


class InMemoryArtifactStore(ArtifactStore):
    def __init__(self):
        self.artifacts: Dict[str, bytes] = {}

    def save(self, name: str, data: bytes) -> None:
        self.artifacts[name] = data

    def load(self, name: str) -> Optional[bytes]:
        return self.artifacts.get(name)

    def exists(self, name: str) -> bool:
        return name in self.artifacts


class FileSystemArtifactStore(ArtifactStore):
    """
    Artifact store backed by a local directory.
    """

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def get_path(self, name: str) -> Path:
        # Artifact names are flat; strip any directory part
        return self.base_path / Path(name).name

    def save(self, name: str, data: bytes) -> None:
        path = self.get_path(name)
        if path.exists():
            path.unlink()
        with path.open("wb") as f:
            f.write(data)

    def load(self, name: str) -> Optional[bytes]:
        path = self.get_path(name)
        if not path.exists():
            return None
        return path.read_bytes()

    def exists(self, name: str) -> bool:
        return self.get_path(name).exists()


# ============================================================================
# Run Lock
# ============================================================================

class RunLock(ABC):
    """Mutual exclusion for runs that touch the same period and jurisdiction."""

    @abstractmethod
    def hold(self, key: str):
        """Context manager that holds the lock for `key`."""
        pass


class KeyedRunLock(RunLock):
    """
    In-process lock per key.

    Serializes runs within one process only; deployments with several
    workers need an external advisory lock implementing RunLock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            logger.debug(f"Acquired run lock {key}")
            yield
