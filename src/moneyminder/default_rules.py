"""Built-in parser rules seeded into an empty rule store."""

AMOUNT_RS = r'Rs\.?\s*([\d,]+\.?\d*)'
AMOUNT_INR = r'INR\s*([\d,]+\.?\d*)'

CLEAN_ON_DATE = r'^(.+?)\s+on\s+\d+'
CLEAN_VIA = r'^(.+?)\s+via\s+'
CLEAN_SENTENCE = r'^(.+?)\.'

GENERAL_BANK_SENDERS = [
    'SBIINB', 'SBICRD', 'SBIPSG', 'SBIPAY',
    'HDFCBN', 'HDFCCB', 'HDFCBK',
    'ICICIM', 'ICICIN', 'ICICIB',
    'AXISRM', 'AXICRD', 'AXISBK',
    'KOTAKM', 'KOTAKB',
    'BOBANK', 'BARODA', 'BOBSMS',
    'PNBANK', 'PUNBNK', 'PNBMSG',
    'CNRBNK', 'CANBNK',
    'IDFCBK', 'IDFCFB',
    'INDUSB', 'YESBNK',
    'FEDSMS', 'FEDBNK',
    'UNIONB', 'UBININ',
    'BOIBNK', 'BOIIND',
    'RBLCRD', 'RBLBNK',
    'IDBIBK', 'AUBANK', 'UJJIVN', 'DBSBNK',
    'PYTMPB', 'PAYTMP', 'AIRTPB', 'JIOPBK',
    'EQUITB', 'SURYBK',
]

DEFAULT_RULES = [
    {
        'name': 'HDFC Bank Credit Card',
        'enabled': True,
        'senderMatch': ['HDFCBK', 'HDFC-VM'],
        'amountRegex': [AMOUNT_RS, r'Rs\s*([\d,]+\.?\d*)', AMOUNT_INR],
        'merchantCondition': [],
        'merchantCommonPatterns': [CLEAN_ON_DATE, CLEAN_SENTENCE],
        'merchantExtractions': [
            {'startText': 'at', 'endText': 'on', 'startIndex': 1},
            {'startText': 'to', 'endText': 'on', 'startIndex': 1},
        ],
        'skipCondition': [],
        'paymentBank': 'HDFC Bank',
        'priority': 20,
        'transactionType': 'expense',
    },
    {
        'name': 'ICICI Bank UPI',
        'enabled': True,
        'senderMatch': ['ICICIB', 'ICICI', 'ICINB'],
        'amountRegex': [
            r'Rs\.?\s*([\d,]+\.?\d*)\s+paid',
            r'Rs\.?\s*([\d,]+\.?\d*)\s+debited',
            AMOUNT_RS,
        ],
        'merchantCondition': [],
        'merchantCommonPatterns': [CLEAN_ON_DATE, CLEAN_VIA, CLEAN_SENTENCE],
        'merchantExtractions': [
            {'startText': 'to', 'endText': 'on', 'startIndex': 1},
            {'startText': 'to', 'endText': '.', 'startIndex': 1},
        ],
        'skipCondition': [],
        'paymentBank': 'ICICI Bank',
        'priority': 15,
        'transactionType': 'expense',
    },
    {
        'name': 'General Bank Transaction',
        'enabled': True,
        'senderMatch': GENERAL_BANK_SENDERS,
        'amountRegex': [AMOUNT_RS, AMOUNT_INR, r'Amount:?\s*Rs\.?\s*([\d,]+\.?\d*)'],
        'merchantCondition': [],
        'merchantCommonPatterns': [CLEAN_ON_DATE, CLEAN_VIA, CLEAN_SENTENCE],
        'merchantExtractions': [
            {'startText': 'at', 'endText': 'on', 'startIndex': 1},
            {'startText': 'to', 'endText': 'on', 'startIndex': 1},
            {'startText': 'at', 'endText': '.', 'startIndex': 1},
            {'startText': 'to', 'endText': '.', 'startIndex': 1},
        ],
        'skipCondition': [],
        'paymentBank': 'Other Bank',
        'priority': 10,
        'transactionType': 'expense',
    },
]
