"""Fixed constants that are not meant to be tuned per deployment."""

# Adaptive retrieval never runs more than this many attempts, whatever the config says
MAX_RETRIEVAL_ATTEMPTS = 3

# Self-grading refinement
REFINE_MIN_RELEVANCE = 0.5
GRADING_DOC_PREVIEW_CHARS = 500

# Near-duplicate detection across sources
MINHASH_NUM_PERM = 128
NEAR_DUPLICATE_THRESHOLD = 0.85
SHINGLE_SIZE = 3

# Web redundancy is measured against this many top knowledge-store references
REDUNDANCY_REFERENCE_COUNT = 5

# Freshness: score halves every FRESHNESS_HALF_LIFE_DAYS; undated sources are neutral
FRESHNESS_HALF_LIFE_DAYS = 365.0
NEUTRAL_FRESHNESS = 0.5

# Critic
MAX_CRITIC_ISSUES = 5
CRITIC_ANSWER_PREVIEW_CHARS = 4000

# Conversation formatting for the planner
PLANNER_RECENT_TURNS = 6

INSUFFICIENT_EVIDENCE_ANSWER = (
    "I could not find enough reliable evidence to answer this question. "
    "Try rephrasing it or adding more detail."
)

QUALITY_CAVEAT = (
    "\n\nNote: This answer did not fully pass quality review. "
    "Some statements may not be completely supported by the cited sources."
)

STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "but", "by", "can", "could",
        "did", "do", "does", "for", "from", "had", "has", "have", "how", "i",
        "if", "in", "into", "is", "it", "its", "me", "my", "of", "on", "or",
        "our", "please", "should", "so", "tell", "than", "that", "the", "their",
        "them", "then", "there", "these", "they", "this", "to", "us", "was",
        "we", "were", "what", "when", "where", "which", "who", "why", "will",
        "with", "would", "you", "your",
    }
)
