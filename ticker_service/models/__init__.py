from .ticker import CurrencyQuote, MarketQuote, Snapshot, utcnow
