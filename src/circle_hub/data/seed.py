"""Static communities shown on the discovery page alongside approved ones.

Seed ids carry the ``seed-`` prefix so they never collide with submission
ids.
"""

from __future__ import annotations

from circle_hub.schemas.community import ApprovedCommunity

SEED_ID_PREFIX = "seed-"

_SEED_ROWS: list[dict[str, object]] = [
    {
        "id": "seed-1",
        "name": "Startup Founders Network",
        "description": "Connect with other startup founders to share ideas, resources, and support.",
        "full_description": (
            "A vibrant community exclusively for startup founders at all stages, with "
            "weekly AMAs from successful entrepreneurs and investors."
        ),
        "platform": "WhatsApp",
        "category": "Startups",
        "tags": ["Entrepreneurship", "Venture Capital", "Business Strategy"],
        "members": 3500,
        "admin": "Sarah Johnson",
        "admin_bio": "Founded 3 startups with 2 exits. Angel investor and startup mentor.",
        "join_link": "https://chat.whatsapp.com/invite/startupfounders2024",
    },
    {
        "id": "seed-paid-29",
        "name": "Startups Dealflow Club",
        "description": "Curated startup opportunities, intros, and weekly dealflow discussions.",
        "platform": "WhatsApp",
        "category": "Startups",
        "members": 1200,
        "join_type": "paid",
        "price_inr": 29,
    },
    {
        "id": "seed-paid-49",
        "name": "Startup Operators Circle",
        "description": "Practical playbooks for growth, hiring, and ops from builders.",
        "platform": "WhatsApp",
        "category": "Startups",
        "members": 2400,
        "location": "India",
        "join_type": "paid",
        "price_inr": 49,
    },
    {
        "id": "seed-paid-99",
        "name": "Founders Mastermind (Weekly)",
        "description": "Weekly founder-only sessions, accountability, and peer feedback.",
        "platform": "WhatsApp",
        "category": "Startups",
        "members": 800,
        "join_type": "paid",
        "price_inr": 99,
    },
    {
        "id": "seed-2",
        "name": "Design Systems Slack",
        "description": "Community for designers and developers working with design systems.",
        "platform": "Slack",
        "category": "Creative",
        "tags": ["Design", "UX/UI", "Frontend"],
        "members": 12000,
        "admin": "Michael Chen",
        "join_link": "https://designsystemscommunity.slack.com/join/shared_invite/design-systems-2024",
    },
    {
        "id": "seed-3",
        "name": "AI Engineers Hub",
        "description": "Technical discussions on machine learning, deep learning, and AI engineering.",
        "platform": "Discord",
        "category": "Tech",
        "tags": ["Machine Learning", "Deep Learning", "Python"],
        "members": 8700,
        "admin": "Dr. Aisha Patel",
        "join_link": "https://discord.gg/aiengineers2024",
    },
    {
        "id": "seed-4",
        "name": "Crypto Investors Circle",
        "description": "Analysis, insights and discussion for serious cryptocurrency investors.",
        "platform": "Telegram",
        "category": "Finance",
        "tags": ["Cryptocurrency", "Blockchain", "Investing"],
        "members": 5200,
        "admin": "Alex Rivera",
        "join_link": "https://t.me/cryptoinvestorscircle",
    },
    {
        "id": "seed-5",
        "name": "Content Creators Collective",
        "description": "Support network for YouTubers, podcasters, and digital content creators.",
        "platform": "WhatsApp",
        "category": "Creators",
        "members": 2800,
        "location": "United States",
        "admin": "Jamie Smith",
        "join_link": "https://chat.whatsapp.com/invite/contentcreators2024",
    },
    {
        "id": "seed-6",
        "name": "Product Managers United",
        "description": "Community for product managers to share insights and best practices.",
        "platform": "Slack",
        "category": "Business",
        "members": 7300,
        "admin": "Raj Patel",
        "join_link": "https://pmunited.slack.com/join/shared_invite/product-managers-2024",
    },
    {
        "id": "seed-7",
        "name": "Wellness Entrepreneurs",
        "description": "For founders and professionals in the health and wellness industry.",
        "platform": "Telegram",
        "category": "Health",
        "members": 1900,
        "location": "Europe",
        "admin": "Emma Johnson",
        "join_link": "https://t.me/wellnessentrepreneurs",
    },
]


def seed_communities() -> list[ApprovedCommunity]:
    """Return fresh copies of the static seed listings."""
    return [ApprovedCommunity.model_validate(row) for row in _SEED_ROWS]
