# Ordered (keyword, icon) pairs matched against the lowercased waste type.
# First match wins.
WASTE_ICONS = [
    ("plastic", "🧴"),
    ("metal", "🥤"),
    ("glass", "🍾"),
    ("paper", "📄"),
    ("battery", "🔋"),
    ("food", "🍎"),
]

DEFAULT_WASTE_ICON = "♻️"

# Bin name -> (color, icon key). Used when the classifier sends the bin as a plain name.
BIN_STYLES = {
    "Blue Bin": ("blue", "recycle"),
    "Green Bin": ("green", "leaf"),
    "No Bin": ("red", "alert-triangle"),
}

DEFAULT_BIN_STYLE = ("gray", "recycle")

# Icon keys -> Material icon names for the UI
BIN_ICON_NAMES = {
    "recycle": "recycling",
    "leaf": "eco",
    "alert-triangle": "warning",
}

BIN_BADGE_CLASSES = {
    "Blue Bin": "text-blue-600 bg-blue-100",
    "Green Bin": "text-green-600 bg-green-100",
    "No Bin": "text-red-600 bg-red-100",
}

DEFAULT_BIN_BADGE_CLASSES = "text-gray-600 bg-gray-100"

SEVERITY_CLASSES = {
    "high": "text-red-600",
    "medium": "text-yellow-600",
    "low": "text-green-600",
}

RECYCLABLE_POINTS = 5
NON_RECYCLABLE_POINTS = 2

HISTORY_CAPACITY = 10
