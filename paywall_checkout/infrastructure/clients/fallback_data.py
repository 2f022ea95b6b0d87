"""Built-in reference data served when the catalog API is unreachable"""

FALLBACK_PLANS = [
    {"id": "free-trial", "name": "Free Trial", "price": 0, "isFree": True, "duration": "7 days"},
    {"id": "1-month", "name": "1 Month", "price": "9.99", "isFree": False, "duration": "1 month"},
    {"id": "3-months", "name": "3 Months", "price": "24.99", "isFree": False, "duration": "3 months"},
]

FALLBACK_SUBSCRIPTION_PLANS = [
    {
        "id": "free-trial",
        "name": "7 days free trial",
        "duration": "1 year",
        "price": 0,
        "isFree": True,
        "isPopular": True,
    },
    {
        "id": "3-months",
        "name": "3 months",
        "duration": "",
        "price": "8.4",
        "originalPrice": "11.6",
        "discount": 29,
    },
    {"id": "1-month", "name": "1 month", "duration": "", "price": "11.6"},
]

FALLBACK_LUNCH_TYPES = [
    {"id": "sandwiches", "value": "sandwiches", "labelKey": "onboarding.lunchTypes.sandwiches", "emoji": "🥪"},
    {"id": "soups", "value": "soups", "labelKey": "onboarding.lunchTypes.soups", "emoji": "🥗"},
    {"id": "fast_food", "value": "fastfood", "labelKey": "onboarding.lunchTypes.fastFood", "emoji": "🍟"},
    {"id": "other", "value": "other", "labelKey": "onboarding.lunchTypes.other", "emoji": "👀"},
]

FALLBACK_COUNTRIES = [
    {"id": "turkey", "code": "TR", "nameKey": "paywall.countries.turkey"},
    {"id": "united-states", "code": "US", "nameKey": "paywall.countries.unitedStates"},
    {"id": "united-kingdom", "code": "GB", "nameKey": "paywall.countries.unitedKingdom"},
    {"id": "germany", "code": "DE", "nameKey": "paywall.countries.germany"},
    {"id": "france", "code": "FR", "nameKey": "paywall.countries.france"},
    {"id": "spain", "code": "ES", "nameKey": "paywall.countries.spain"},
    {"id": "italy", "code": "IT", "nameKey": "paywall.countries.italy"},
    {"id": "canada", "code": "CA", "nameKey": "paywall.countries.canada"},
    {"id": "australia", "code": "AU", "nameKey": "paywall.countries.australia"},
    {"id": "netherlands", "code": "NL", "nameKey": "paywall.countries.netherlands"},
]

FALLBACK_TESTIMONIALS = [
    {
        "id": "testimonial-1",
        "name": "Yasmine, -8 kg",
        "ratingTitle": "Improved digestion",
        "text": "My customized fasting plan really helped me with my stomach cramps and bloating problems.",
        "stars": 5,
        "beforeImage": "testimonial-before.png",
        "afterImage": "testimonial-after.png",
    },
    {
        "id": "testimonial-2",
        "name": "Jennifer, -12 kg",
        "ratingTitle": "Better energy levels",
        "text": "I feel so much more energetic throughout the day. The plan is easy to follow and very effective.",
        "stars": 5,
        "beforeImage": "fat-body.png",
        "afterImage": "skinny-body.png",
    },
    {
        "id": "testimonial-3",
        "name": "Sarah, -6 kg",
        "ratingTitle": "Amazing results",
        "text": "The personalized approach made all the difference. I've never felt better about my body.",
        "stars": 5,
        "beforeImage": "testimonial-before.png",
        "afterImage": "testimonial-after.png",
    },
]

FALLBACK_REVIEWS = [
    {
        "id": "review-1",
        "title": "Fascinating!",
        "emoji": "🔥",
        "stars": 5,
        "content": "My customized fasting plan really helped me with my stomach cramps and bloating problems.",
        "reviewer": "Kumsalp",
        "reviewDate": "Nov 22",
    },
    {
        "id": "review-2",
        "title": "Awesome!",
        "emoji": "⭐",
        "stars": 5,
        "content": "The personalized approach made all the difference. I've never felt better about my body.",
        "reviewer": "Mertoz",
        "reviewDate": "Nov 20",
    },
    {
        "id": "review-3",
        "title": "Amazing!",
        "emoji": "✨",
        "stars": 4,
        "content": "I feel so much more energetic throughout the day. The plan is easy to follow and very effective.",
        "reviewer": "Sarah",
        "reviewDate": "Nov 15",
    },
]
