from app.models.user import User, UserRole
from app.models.balance import Balance, Currency, SEED_CURRENCIES
from app.models.portfolio import PortfolioPosition, AssetType
from app.models.transaction import Transaction, TransactionType
from app.models.transfer import Transfer, TransferType, TransferStatus
from app.models.trade import Trade, TradeStatus
