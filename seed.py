from contenthq.auth import get_password_hash
from contenthq.database import SessionLocal, engine, Base
from contenthq.models import (
    ApprovalLink,
    ApprovalLinkView,
    Client,
    ContentActivity,
    ContentItem,
    Member,
    Organization,
    Webhook,
)
from contenthq.workflow import lifecycle

# Create tables
Base.metadata.create_all(bind=engine)

db = SessionLocal()

# Clear existing data
for model in (ContentActivity, ApprovalLinkView, ApprovalLink, ContentItem, Webhook, Client, Member, Organization):
    db.query(model).delete()
db.commit()

organization = Organization(name="Demo Agency", slug="demo-agency")
db.add(organization)
db.flush()

owner = Member(
    org_id=organization.id,
    email="owner@demo.example.com",
    hashed_password=get_password_hash("demo-password"),
    display_name="Olivia Owner",
    role="owner",
)
designer = Member(
    org_id=organization.id,
    email="designer@demo.example.com",
    hashed_password=get_password_hash("demo-password"),
    display_name="Diego Designer",
    role="designer",
)
db.add_all([owner, designer])

bakery = Client(org_id=organization.id, name="Padaria Central", slug="padaria-central")
gym = Client(org_id=organization.id, name="Iron Gym", slug="iron-gym")
db.add_all([bakery, gym])
db.flush()

# Sample content
content_items = [
    ContentItem(
        org_id=organization.id,
        client_id=bakery.id,
        created_by=designer.id,
        status="draft",
        title="Weekend croissant promo",
        body="Two croissants for the price of one, Saturday only.",
        channels=["instagram"],
    ),
    ContentItem(
        org_id=organization.id,
        client_id=bakery.id,
        created_by=designer.id,
        status="in_production",
        internal_approved=True,
        internal_approved_by=owner.id,
        title="New sourdough line",
        body="Slow-fermented for 48 hours.",
        channels=["instagram", "facebook"],
    ),
    ContentItem(
        org_id=organization.id,
        client_id=gym.id,
        created_by=designer.id,
        status="in_production",
        title="January challenge",
        body="30 days, 30 workouts.",
        channels=["instagram", "linkedin"],
    ),
]
db.add_all(content_items)
db.commit()

# Send the internally approved item to the client
link, url, _ = lifecycle.issue_link(db, content_items[1], owner)

print("Database seeded successfully!")
print(f"  - Organization: {organization.name}")
print(f"  - Login: {owner.email} / demo-password")
print(f"  - {len(content_items)} content items")
print(f"  - Approval link: {url}")

db.close()
