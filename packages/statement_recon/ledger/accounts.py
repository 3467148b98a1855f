"""Bank account records that own transactions, checkpoints and imports."""

from __future__ import annotations

from sqlalchemy.orm import Session

from db.models.ledger import SrAccount

from ..logging_setup import get_logger

logger = get_logger("statement_recon.ledger.accounts")


def create_account(
    session: Session,
    name: str,
    *,
    bank_name: str | None = None,
    currency_code: str = "VND",
) -> int:
    """Create an account and return its id."""

    name = " ".join(name.split())
    if not name:
        raise ValueError("account name must not be empty")
    code = currency_code.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"currency_code must be a 3-letter code, got {currency_code!r}")

    account = SrAccount(name=name, bank_name=bank_name, currency_code=code)
    session.add(account)
    session.flush()
    logger.info("created account %d (%s)", account.id, name)
    return account.id


__all__ = ["create_account"]
