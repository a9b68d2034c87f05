from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from dinheiros.utils.dates import to_utc

# SQLite hands datetimes back without tzinfo; everything is stored as UTC.
UTCDateTime = Annotated[datetime, AfterValidator(to_utc)]
