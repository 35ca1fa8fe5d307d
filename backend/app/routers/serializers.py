from decimal import Decimal
from typing import Optional


def _money(value) -> Optional[str]:
    return str(Decimal(value)) if value is not None else None


def _ts(value) -> Optional[str]:
    return value.isoformat() if value else None


def balance_dict(b) -> dict:
    return {"currency": b.currency, "amount": _money(b.amount)}


def position_dict(p) -> dict:
    return {
        "symbol": p.symbol,
        "asset_type": p.asset_type.value,
        "quantity": _money(p.quantity),
        "average_buy_price": _money(p.average_buy_price),
        "currency": p.currency,
        "updated_at": _ts(p.updated_at),
    }


def transaction_dict(t) -> dict:
    return {
        "id": t.id,
        "type": t.type.value,
        "symbol": t.symbol,
        "asset_type": t.asset_type.value,
        "quantity": _money(t.quantity),
        "price": _money(t.price),
        "total_amount": _money(t.total_amount),
        "currency": t.currency,
        "created_at": _ts(t.created_at),
    }


def transfer_dict(t) -> dict:
    return {
        "id": t.id,
        "user_id": t.user_id,
        "type": t.type.value,
        "status": t.status.value,
        "amount": _money(t.amount),
        "currency": t.currency,
        "recipient": t.recipient,
        "iban": t.iban,
        "purpose": t.purpose,
        "crypto_address": t.crypto_address,
        "crypto_currency": t.crypto_currency,
        "created_at": _ts(t.created_at),
        "processed_at": _ts(t.processed_at),
    }


def trade_dict(t) -> dict:
    return {
        "id": t.id,
        "user_id": t.user_id,
        "amount": _money(t.amount),
        "currency": t.currency,
        "status": t.status.value,
        "profit": _money(t.profit),
        "profit_percent": _money(t.profit_percent),
        "trading_pair": t.trading_pair,
        "admin_comment": t.admin_comment,
        "created_at": _ts(t.created_at),
        "closed_at": _ts(t.closed_at),
    }
