"""Application configuration."""
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Config:
    """Application configuration loaded from environment variables."""
    
    # Session
    starting_balance: int = int(os.getenv("STARTING_BALANCE", "2000"))
    human_name: str = os.getenv("HUMAN_NAME", "You")
    dealer_name: str = os.getenv("DEALER_NAME", "Dealer")
    bot_min_chips: int = int(os.getenv("BOT_MIN_CHIPS", "1000"))
    bot_max_chips: int = int(os.getenv("BOT_MAX_CHIPS", "4999"))
    
    # Betting
    min_bet: int = int(os.getenv("MIN_BET", "10"))
    max_bet: int = int(os.getenv("MAX_BET", "500"))
    default_bet: int = int(os.getenv("DEFAULT_BET", "100"))
    raise_increment: int = int(os.getenv("RAISE_INCREMENT", "50"))
    
    # Vegas-style Solitaire buy-in and per-card foundation reward
    solitaire_cost: int = int(os.getenv("SOLITAIRE_COST", "52"))
    solitaire_reward: int = int(os.getenv("SOLITAIRE_REWARD", "5"))
    
    # Rummy has no betting; the winner collects a flat bonus
    rummy_ante: int = int(os.getenv("RUMMY_ANTE", "0"))
    rummy_reward: int = int(os.getenv("RUMMY_REWARD", "500"))
    
    # Pacing delays (seconds)
    deal_delay: float = float(os.getenv("DEAL_DELAY", "1.0"))
    bot_think_delay: float = float(os.getenv("BOT_THINK_DELAY", "1.5"))
    community_delay: float = float(os.getenv("COMMUNITY_DELAY", "1.5"))
    resolve_delay: float = float(os.getenv("RESOLVE_DELAY", "1.0"))
    overlay_delay: float = float(os.getenv("OVERLAY_DELAY", "4.0"))
    
    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


config = Config()
