"""Application configuration."""

import os
from dataclasses import dataclass, field

# Chiliz Spicy testnet
DEFAULT_CHAIN_ID = 88882

DEFAULT_LEADERBOARD_ADDRESSES = (
    "0x22821210811e59de6A493A6C774134c311546554",
    "0x87971c681F613C5d15aA2e2425881204644e43A9",
    "0x41e412503a277A8A331742442D157A3485E92404",
    "0xAF3A7539D258169A187152E5A67434313B11e80C",
    "0x99539561B3361aC836e2C6A53145453664A93245",
    "0x4594285A483951A85bB66b579A59e866a4C15a1b",
    "0x8A1f34C3747514304481c92900a3e9d8919aA048",
    "0xC4B81d45A3c6043134440523C6415a6b0c8a6d71",
    "0x1234567890123456789012345678901234567890",
    "0x6B1B1bA4A7A77b10214A360819a5843A2335198C",
)


def _split_addresses(raw: str) -> tuple[str, ...]:
    return tuple(a.strip() for a in raw.split(",") if a.strip())


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # API settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Chiliz ledger
    chiliz_rpc_url: str = "https://spicy-rpc.chiliz.com"
    nft_contract_address: str = "0x128503A9BB609513Dd046bec51feEfD97EA134b2"
    token_contract_address: str = "0xBd5bABA6EB9591e12dfBb8C044b177832B1E6DB0"
    token_decimals: int = 18
    target_chain_id: int = DEFAULT_CHAIN_ID

    # "rpc" reads balances on-chain, "demo" draws mock balances per wallet
    holdings_source: str = "rpc"

    # Seconds allowed for a single account's ledger reads
    ledger_timeout: float = 10.0

    leaderboard_addresses: tuple[str, ...] = field(
        default_factory=lambda: DEFAULT_LEADERBOARD_ADDRESSES
    )

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        addresses = os.getenv("LEADERBOARD_ADDRESSES")
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            chiliz_rpc_url=os.getenv(
                "CHILIZ_RPC_URL",
                "https://spicy-rpc.chiliz.com"
            ),
            nft_contract_address=os.getenv(
                "NFT_CONTRACT_ADDRESS",
                "0x128503A9BB609513Dd046bec51feEfD97EA134b2"
            ),
            token_contract_address=os.getenv(
                "TOKEN_CONTRACT_ADDRESS",
                "0xBd5bABA6EB9591e12dfBb8C044b177832B1E6DB0"
            ),
            token_decimals=int(os.getenv("TOKEN_DECIMALS", "18")),
            target_chain_id=int(os.getenv("TARGET_CHAIN_ID", str(DEFAULT_CHAIN_ID))),
            holdings_source=os.getenv("HOLDINGS_SOURCE", "rpc").lower(),
            ledger_timeout=float(os.getenv("LEDGER_TIMEOUT", "10.0")),
            leaderboard_addresses=(
                _split_addresses(addresses)
                if addresses
                else DEFAULT_LEADERBOARD_ADDRESSES
            ),
        )
