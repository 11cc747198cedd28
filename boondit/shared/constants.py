CREATION_STATUSES = ("draft", "published")

SORT_OPTIONS = {
    "newest": "Newest",
    "oldest": "Oldest",
    "az": "A-Z",
    "za": "Z-A",
    "popular": "Most viewed",
    "rating": "Top rated",
}

MIN_RATING = 1
MAX_RATING = 5

PROXY_CODE_BYTES = 6  # token_urlsafe(6) -> 8 characters
PROXY_CODE_ATTEMPTS = 10

MAX_SESSION_ID_LENGTH = 255

MAX_SCREENSHOT_BYTES = 10 * 1024 * 1024
IMGBB_UPLOAD_URL = "https://api.imgbb.com/1/upload"
IMGBB_TIMEOUT_SECONDS = 30

DISCORD_AUTH_URL = "https://discord.com/api/oauth2/authorize"
DISCORD_TOKEN_URL = "https://discord.com/api/oauth2/token"
DISCORD_USER_URL = "https://discord.com/api/users/@me"
DISCORD_SCOPES = ("identify", "email")
DISCORD_AVATAR_URL = "https://cdn.discordapp.com/avatars/{user_id}/{avatar}.png"
OAUTH_TIMEOUT_SECONDS = 15

ANALYTICS_ROLLUP_DAYS = 30
TOP_REFERRER_LIMIT = 10

DEFAULT_CATEGORIES = [
    {"name": "Games", "slug": "games", "description": "Games and entertainment", "color": "#ef4444", "icon": "🎮"},
    {"name": "Productivity", "slug": "productivity", "description": "Get things done", "color": "#22c55e", "icon": "⚡"},
    {"name": "Social", "slug": "social", "description": "Connect with others", "color": "#3b82f6", "icon": "👥"},
    {"name": "Entertainment", "slug": "entertainment", "description": "Entertainment apps", "color": "#f59e0b", "icon": "🎬"},
    {"name": "Education", "slug": "education", "description": "Learn something new", "color": "#8b5cf6", "icon": "📚"},
    {"name": "Photo & Video", "slug": "photo-video", "description": "Capture and edit media", "color": "#ec4899", "icon": "📸"},
    {"name": "Music", "slug": "music", "description": "Music and audio", "color": "#06b6d4", "icon": "🎵"},
    {"name": "Shopping", "slug": "shopping", "description": "Shop online", "color": "#f97316", "icon": "🛒"},
    {"name": "Utilities", "slug": "utilities", "description": "Tools and utilities", "color": "#64748b", "icon": "🔧"},
    {"name": "Developer Tools", "slug": "developer-tools", "description": "Development tools", "color": "#0ea5e9", "icon": "💻"},
    {"name": "Design", "slug": "design", "description": "Design and creativity", "color": "#f43f5e", "icon": "🎨"},
    {"name": "Finance", "slug": "finance", "description": "Money management", "color": "#10b981", "icon": "💰"},
]
