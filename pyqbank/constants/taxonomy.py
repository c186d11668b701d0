"""Default UPSC subject taxonomy used to bootstrap the subjects table."""

DEFAULT_SUBJECTS = [
    {
        "name": "Polity",
        "code": "POL",
        "description": "Indian Polity and Governance",
        "icon": "🏛️",
        "display_order": 1,
        "topics": [
            ("Constitution", "CONST", ["Preamble", "Fundamental Rights", "DPSP", "Fundamental Duties", "Union Executive", "Parliament", "Judiciary", "Centre-State Relations", "Local Governance", "Emergency Provisions", "Constitutional Bodies", "Constitutional Amendments"]),
            ("Federalism", "FED", ["Centre-State Relations", "Inter-State Relations", "Governor", "State Legislature"]),
            ("Parliament", "PARL", ["Lok Sabha", "Rajya Sabha", "Parliamentary Committees", "Budget Process", "Question Hour"]),
            ("Judiciary", "JUD", ["Supreme Court", "High Courts", "Judicial Review", "PIL", "Judicial Activism"]),
            ("Governance", "GOV", ["E-Governance", "Transparency", "Accountability", "Citizen Services", "Right to Information"]),
            ("Elections", "ELEC", ["Election Commission", "Electoral Reforms", "Political Parties", "Election Process"]),
        ],
    },
    {
        "name": "History",
        "code": "HIST",
        "description": "Ancient, Medieval and Modern History",
        "icon": "📜",
        "display_order": 2,
        "topics": [
            ("Ancient History", "ANC", ["Indus Valley Civilization", "Vedic Age", "Mauryan Empire", "Gupta Empire", "Post-Gupta Period", "Art and Architecture", "Literature"]),
            ("Medieval History", "MED", ["Delhi Sultanate", "Mughal Empire", "Vijayanagara Empire", "Bhakti Movement", "Medieval Architecture"]),
            ("Modern History", "MOD", ["British Rule", "Freedom Struggle", "Revolt of 1857", "Indian National Movement", "Social Reforms", "Post-Independence India"]),
            ("Art & Culture", "ART", ["Indian Architecture", "Paintings", "Music", "Dance", "Literature", "UNESCO Heritage Sites"]),
            ("Freedom Movement", "FREE", ["Gandhi Ji", "Congress Sessions", "Revolutionary Movement", "Partition", "Integration of States"]),
        ],
    },
    {
        "name": "Geography",
        "code": "GEO",
        "description": "Physical, Human and Economic Geography",
        "icon": "🌍",
        "display_order": 3,
        "topics": [
            ("Physical Geography", "PHYS", ["Earth", "Climate", "Rocks and Minerals", "Geomorphology", "Oceanography", "Atmosphere"]),
            ("Indian Geography", "IND", ["Location and Extent", "Physiography", "Rivers", "Climate", "Natural Vegetation", "Soil", "Agriculture", "Minerals", "Industries"]),
            ("World Geography", "WORLD", ["Continents", "Major Countries", "Climate Zones", "Ocean Currents", "International Boundaries"]),
            ("Environmental Geography", "ENV", ["Climate Change", "Biodiversity", "Ecosystems", "Conservation", "Natural Disasters"]),
            ("Resources", "RES", ["Water Resources", "Mineral Resources", "Energy Resources", "Forest Resources"]),
        ],
    },
    {
        "name": "Economy",
        "code": "ECO",
        "description": "Indian and World Economy",
        "icon": "💰",
        "display_order": 4,
        "topics": [
            ("Basic Concepts", "BASIC", ["GDP", "Inflation", "Fiscal Policy", "Monetary Policy", "Taxation", "Budget"]),
            ("Indian Economy", "IND", ["Economic Development", "Planning", "Five Year Plans", "NITI Aayog", "Poverty", "Unemployment"]),
            ("Sectors", "SECT", ["Agriculture", "Industry", "Services", "Banking", "Insurance", "Capital Market"]),
            ("Economic Reforms", "REF", ["LPG Reforms", "GST", "Demonetization", "Digital Economy", "Make in India"]),
            ("International Economics", "INT", ["Trade", "WTO", "IMF", "World Bank", "FDI", "Balance of Payments"]),
            ("Government Schemes", "SCH", ["Social Welfare", "Employment", "Financial Inclusion", "Skill Development"]),
        ],
    },
    {
        "name": "Environment",
        "code": "ENV",
        "description": "Environment and Ecology",
        "icon": "🌱",
        "display_order": 5,
        "topics": [
            ("Ecology", "ECO", ["Ecosystem", "Food Chain", "Biodiversity", "Species", "Habitats"]),
            ("Climate Change", "CLIM", ["Global Warming", "Paris Agreement", "Carbon Credits", "UNFCCC", "Kyoto Protocol"]),
            ("Conservation", "CONS", ["Wildlife Protection", "National Parks", "Sanctuaries", "Biosphere Reserves", "Project Tiger"]),
            ("Pollution", "POL", ["Air Pollution", "Water Pollution", "Soil Pollution", "Noise Pollution", "E-waste"]),
            ("Environmental Laws", "LAW", ["Environment Protection Act", "Wildlife Protection Act", "Forest Conservation Act", "EIA"]),
            ("Sustainable Development", "SUS", ["SDGs", "Renewable Energy", "Green Technology", "Circular Economy"]),
        ],
    },
    {
        "name": "Science & Technology",
        "code": "SCI",
        "description": "Science and Technology Developments",
        "icon": "🔬",
        "display_order": 6,
        "topics": [
            ("Basic Science", "BASIC", ["Physics", "Chemistry", "Biology", "Mathematics"]),
            ("Space Technology", "SPACE", ["ISRO", "Satellites", "Space Missions", "GPS"]),
            ("Nuclear Technology", "NUC", ["Nuclear Energy", "NPT", "Nuclear Power Plants", "Nuclear Safety"]),
            ("Biotechnology", "BIO", ["Genetic Engineering", "GM Crops", "Stem Cell", "Cloning", "Vaccines"]),
            ("Information Technology", "IT", ["AI", "Machine Learning", "Blockchain", "IoT", "Cybersecurity", "Digital India"]),
            ("Defence Technology", "DEF", ["Missiles", "Defence Deals", "Indigenous Defence Production", "Make in India Defence"]),
            ("Health & Medicine", "HEALTH", ["Diseases", "Medical Research", "Pharmaceuticals", "Health Programs"]),
        ],
    },
    {
        "name": "International Relations",
        "code": "IR",
        "description": "International Relations and Organizations",
        "icon": "🌐",
        "display_order": 7,
        "topics": [
            ("India & Neighbors", "NEIGH", ["Pakistan", "China", "Bangladesh", "Nepal", "Sri Lanka", "Myanmar", "Bhutan", "Afghanistan"]),
            ("Major Powers", "POW", ["USA", "Russia", "Europe", "Japan", "ASEAN"]),
            ("International Organizations", "ORG", ["UN", "UNSC", "NATO", "BRICS", "G20", "SCO", "SAARC"]),
            ("Global Issues", "GLOB", ["Terrorism", "Refugees", "Climate Change", "Trade Wars", "Cyber Warfare"]),
            ("Bilateral Relations", "BIL", ["Strategic Partnerships", "Trade Agreements", "Defence Cooperation", "Cultural Ties"]),
        ],
    },
    {
        "name": "Internal Security",
        "code": "SEC",
        "description": "Internal Security and Disaster Management",
        "icon": "🛡️",
        "display_order": 8,
        "topics": [
            ("Terrorism", "TERR", ["Naxalism", "Insurgency", "Radicalization", "Counter-terrorism"]),
            ("Border Management", "BOR", ["Border Security Force", "Coastal Security", "Border Infrastructure"]),
            ("Cybersecurity", "CYB", ["Cyber Attacks", "Data Protection", "IT Act", "Cyber Crime"]),
            ("Disaster Management", "DIS", ["NDMA", "Natural Disasters", "Disaster Response", "Mitigation"]),
            ("Law & Order", "LAW", ["Police Reforms", "Criminal Justice System", "Communal Violence", "Women Safety"]),
        ],
    },
    {
        "name": "Social Issues",
        "code": "SOC",
        "description": "Social Justice and Welfare",
        "icon": "👥",
        "display_order": 9,
        "topics": [
            ("Poverty & Unemployment", "POV", ["Below Poverty Line", "Employment Generation", "MGNREGA", "Skill Development"]),
            ("Education", "EDU", ["Right to Education", "Literacy", "Higher Education", "NEP 2020"]),
            ("Health", "HEALTH", ["Ayushman Bharat", "Maternal Health", "Child Health", "Sanitation", "Nutrition"]),
            ("Gender Issues", "GEN", ["Women Empowerment", "Gender Equality", "Crimes Against Women", "Reservation for Women"]),
            ("Caste & Tribes", "CASTE", ["SC/ST Issues", "Tribal Welfare", "Reservation", "Atrocities"]),
            ("Urbanization", "URB", ["Smart Cities", "Slums", "Urban Planning", "Infrastructure"]),
        ],
    },
    {
        "name": "Ethics",
        "code": "ETH",
        "description": "Ethics, Integrity and Aptitude",
        "icon": "⚖️",
        "display_order": 10,
        "topics": [
            ("Ethics Basics", "BASIC", ["Values", "Morals", "Ethics Theories", "Virtues"]),
            ("Public Service Ethics", "PUB", ["Civil Service Values", "Accountability", "Transparency", "Objectivity"]),
            ("Probity in Governance", "PROB", ["Corruption", "Integrity", "Whistleblowing", "Lokpal", "RTI"]),
            ("Case Studies", "CASE", ["Ethical Dilemmas", "Decision Making", "Conflict Resolution"]),
            ("Attitude", "ATT", ["Empathy", "Tolerance", "Compassion", "Emotional Intelligence"]),
        ],
    },
]
