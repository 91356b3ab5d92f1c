"""Constants for Gatherly.

Policy values are tunable through the environment; services take them as
constructor arguments and default to these.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# Invitations
INVITATION_TTL_DAYS = int(os.getenv("INVITATION_TTL_DAYS", "7"))
INVITE_CODE_LENGTH = int(os.getenv("INVITE_CODE_LENGTH", "8"))

# Maximum number of values the store accepts in one "in" predicate
FEED_QUERY_FANOUT_LIMIT = int(os.getenv("FEED_QUERY_FANOUT_LIMIT", "30"))
