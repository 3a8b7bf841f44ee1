"""
guildcoins — Community Coins for Discord
=========================================
A virtual currency for Discord communities.  Members receive coins from
admins, pay each other with ``/pay``, and a web frontend reads balances
through a small RPC-style HTTP API.  Balances live in PostgreSQL; nothing
is cached in process memory.

Package layout::

    guildcoins/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Discord CDN URLs, response statuses
    ├── i18n.py            # YAML message catalogs
    ├── locales/           # en.yaml, es.yaml
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── faults.py      # SQLAlchemy errors → tagged persistence faults
    │   └── models.py      # User, Account, CoinTransaction
    ├── engine/
    │   ├── profiles.py    # Discord / GitHub profile value objects
    │   └── thumbnail.py   # Avatar hash → CDN URL
    ├── services/
    │   ├── errors.py          # Error taxonomy + classification decorator
    │   ├── ledger_service.py  # create / credit / transfer / lookup
    │   └── identity_service.py # Discord sign-in account linking
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader
    │   └── cogs/
    │       └── coins.py   # /give-coins, /pay, /balance
    └── api/
        ├── main.py        # FastAPI app + error envelope
        ├── deps.py        # Engine + JWT dependencies
        └── routes/        # user.* and auth.* procedures
"""

__version__ = "0.1.0"
