import os

CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")

MATCH_MINUTES = 90

STRENGTH_MIN = 1
STRENGTH_MAX = 100

INITIAL_COINS = 5000
INITIAL_TOKENS = 1000

# 1000 coins = 100 tokens
CONVERSION_RATE = 1000
CONVERSION_YIELD = 100

# bets are still accepted this long after a match goes live
LIVE_BET_GRACE_SEC = 10

# welcome gift, in coins; the first claim pays more
WELCOME_GIFT_FIRST = 500
WELCOME_GIFT_REPEAT = 100
WELCOME_GIFT_COOLDOWN_HOURS = 24

# paid to the referrer, in tokens
REFERRAL_REWARD = 50
REFERRAL_CODE_LENGTH = 6

# credited (unclaimed) to every supporter of a team that wins a match
ALLIANCE_WIN_REWARD = 10
