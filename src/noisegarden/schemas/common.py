"""Shared schema helpers."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from noisegarden.db.time import as_utc

# Timestamps leave the API as aware UTC values whatever the store returned.
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]
