# Nasdaq-100 constituents used as the equities option universe.
NASDAQ100: tuple[tuple[str, str], ...] = (
    ("AAPL", "Apple Inc"),
    ("MSFT", "Microsoft Corporation"),
    ("GOOGL", "Alphabet Inc Class A"),
    ("GOOG", "Alphabet Inc Class C"),
    ("AMZN", "Amazon.com Inc"),
    ("META", "Meta Platforms Inc"),
    ("TSLA", "Tesla Inc"),
    ("NVDA", "NVIDIA Corporation"),
    ("NFLX", "Netflix Inc"),
    ("CRM", "Salesforce Inc"),
    ("ORCL", "Oracle Corporation"),
    ("ADBE", "Adobe Inc"),
    ("AMD", "Advanced Micro Devices Inc"),
    ("INTC", "Intel Corporation"),
    ("CSCO", "Cisco Systems Inc"),
    ("QCOM", "QUALCOMM Incorporated"),
    ("NOW", "ServiceNow Inc"),
    ("INTU", "Intuit Inc"),
    ("TXN", "Texas Instruments Incorporated"),
    ("AMAT", "Applied Materials Inc"),
    ("AVGO", "Broadcom Inc"),
    ("MU", "Micron Technology Inc"),
    ("ADI", "Analog Devices Inc"),
    ("MRVL", "Marvell Technology Inc"),
    ("KLAC", "KLA Corporation"),
    ("LRCX", "Lam Research Corporation"),
    ("SNPS", "Synopsys Inc"),
    ("CDNS", "Cadence Design Systems Inc"),
    ("TEAM", "Atlassian Corporation"),
    ("WDAY", "Workday Inc"),
    ("PANW", "Palo Alto Networks Inc"),
    ("CRWD", "CrowdStrike Holdings Inc"),
    ("FTNT", "Fortinet Inc"),
    ("DDOG", "Datadog Inc"),
    ("ZS", "Zscaler Inc"),
    ("OKTA", "Okta Inc"),
    ("CMCSA", "Comcast Corporation"),
    ("DISH", "DISH Network Corporation"),
    ("SBUX", "Starbucks Corporation"),
    ("BKNG", "Booking Holdings Inc"),
    ("MDB", "MongoDB Inc"),
    ("ABNB", "Airbnb Inc"),
    ("EBAY", "eBay Inc"),
    ("JD", "JD.com Inc"),
    ("PDD", "PDD Holdings Inc"),
    ("COST", "Costco Wholesale Corporation"),
    ("KHC", "The Kraft Heinz Company"),
    ("MDLZ", "Mondelez International Inc"),
    ("PEP", "PepsiCo Inc"),
    ("GILD", "Gilead Sciences Inc"),
    ("AMGN", "Amgen Inc"),
    ("BIIB", "Biogen Inc"),
    ("REGN", "Regeneron Pharmaceuticals Inc"),
    ("VRTX", "Vertex Pharmaceuticals Incorporated"),
    ("ILMN", "Illumina Inc"),
    ("MRNA", "Moderna Inc"),
    ("SGEN", "Seagen Inc"),
    ("HON", "Honeywell International Inc"),
    ("ADP", "Automatic Data Processing Inc"),
    ("PAYX", "Paychex Inc"),
    ("PYPL", "PayPal Holdings Inc"),
    ("NDAQ", "Nasdaq Inc"),
    ("XEL", "Xcel Energy Inc"),
    ("EXC", "Exelon Corporation"),
    ("DLTR", "Dollar Tree Inc"),
    ("ZOOM", "Zoom Video Communications Inc"),
    ("DOCU", "DocuSign Inc"),
    ("SPLK", "Splunk Inc"),
    ("NTNX", "Nutanix Inc"),
    ("VEEV", "Veeva Systems Inc"),
    ("ALGN", "Align Technology Inc"),
    ("BMRN", "BioMarin Pharmaceutical Inc"),
    ("ALXN", "Alexion Pharmaceuticals Inc"),
    ("INCY", "Incyte Corporation"),
    ("WBA", "Walgreens Boots Alliance Inc"),
    ("ROST", "Ross Stores Inc"),
    ("LULU", "Lululemon Athletica Inc"),
    ("MCHP", "Microchip Technology Incorporated"),
    ("SWKS", "Skyworks Solutions Inc"),
    ("QRVO", "Qorvo Inc"),
    ("EA", "Electronic Arts Inc"),
    ("ATVI", "Activision Blizzard Inc"),
    ("NTES", "NetEase Inc"),
    ("FAST", "Fastenal Company"),
    ("FISV", "Fiserv Inc"),
    ("ISRG", "Intuitive Surgical Inc"),
    ("CSX", "CSX Corporation"),
    ("TMUS", "T-Mobile US Inc"),
    ("CHTR", "Charter Communications Inc"),
    ("CPRT", "Copart Inc"),
    ("CTAS", "Cintas Corporation"),
    ("VRSK", "Verisk Analytics Inc"),
    ("IDXX", "IDEXX Laboratories Inc"),
    ("ANSS", "ANSYS Inc"),
    ("CTSH", "Cognizant Technology Solutions Corporation"),
    ("MELI", "MercadoLibre Inc"),
    ("ODFL", "Old Dominion Freight Line Inc"),
    ("PCAR", "PACCAR Inc"),
    ("SIRI", "Sirius XM Holdings Inc"),
    ("WDC", "Western Digital Corporation"),
    ("XLNX", "Xilinx Inc"),
)
