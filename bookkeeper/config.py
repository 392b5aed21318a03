import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    # Database settings
    db_file: str = os.getenv("BOOKKEEPER_DB_FILE", "books.db")
    bucket: str = os.getenv("BOOKKEEPER_BUCKET", "store")

    # Date handling
    date_format: str = os.getenv("BOOKKEEPER_DATE_FORMAT", "%d-%m-%Y")
    display_date_format: str = os.getenv("BOOKKEEPER_DISPLAY_DATE_FORMAT", "%d %B %Y")
    unset_token: str = os.getenv("BOOKKEEPER_UNSET_TOKEN", "???")

    # CLI settings
    output: str = os.getenv("BOOKKEEPER_OUTPUT", "rich")
    log_level: str = os.getenv("BOOKKEEPER_LOG_LEVEL", "WARNING")


settings = Settings()
