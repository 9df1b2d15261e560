"""
Starter template strings for the moneyminder init command.
"""

STARTER_SETTINGS = '''# moneyminder settings

# Currency stamped on every extracted transaction
currency: INR

# Category given to new transactions (merchant notes / history may replace it)
default_category: other

# Parser rules database (relative to this directory)
rules_db: rules.db

# Seed the built-in bank rules when the rules database is empty
seed_default_rules: true

# Alerts for the same amount and merchant closer than this are duplicates
duplicate_window_seconds: 60

# Which merchant candidate "moneyminder suggest" picks: last or first
merchant_pick: last

# Default messages file for "moneyminder scan" (relative to this directory)
messages_file: messages.csv
'''

STARTER_MESSAGES = '''id,sender,date,body
1,VM-HDFCBK,2024-05-12 10:15:00,Rs.500.00 spent on HDFC Bank Card XX1234 at FLIPKART on 12-05-24. Avl Lmt: Rs.45000
2,AD-ICICIB,2024-05-13 18:40:00,Rs 250 paid to ZOMATO on 13-05-24 via UPI. Ref 412345678901
3,VM-HDFCBK,2024-05-14 09:00:00,Your OTP for transaction is 123456. Do not share it with anyone.
'''
