"""Seed the directory with sample doctor listings.

Seeded listings have no creator and no claim, so they start out unverified and
can be claimed by doctors who sign up later.
"""

import asyncio

from sqlalchemy import select

from app.database import AsyncSessionLocal
from app.models.doctors import doctors

SAMPLE_DOCTORS = [
    {
        "name": "Dr. Sarah Johnson",
        "specialty": "Cardiology",
        "subspecialties": ["Interventional Cardiology", "Heart Failure"],
        "hospital": "CHU Mustapha Pacha",
        "experience": 15,
        "education": ["Faculty of Medicine of Algiers, MD", "CHU Mustapha, Residency"],
        "bio": "Board-certified cardiologist focused on heart failure and interventional care.",
        "languages": ["Arabic", "French", "English"],
        "contact": {
            "phone": "+213 21 23 45 67",
            "email": "s.johnson@example.org",
            "address": "Place du 1er Mai",
            "city": "Sidi M'Hamed",
            "region": "Alger",
        },
    },
    {
        "name": "Dr. Karim Benali",
        "specialty": "Pediatrics",
        "subspecialties": None,
        "hospital": "EHS Canastel",
        "experience": 9,
        "education": ["Faculty of Medicine of Oran, MD"],
        "bio": "General pediatrician with a focus on early childhood development.",
        "languages": ["Arabic", "French"],
        "contact": {
            "phone": "+213 41 33 22 11",
            "email": "k.benali@example.org",
            "address": "Route de Canastel",
            "city": "Bir El Djir",
            "region": "Oran",
        },
    },
    {
        "name": "Dr. Amina Haddad",
        "specialty": "Dermatology",
        "subspecialties": ["Pediatric Dermatology"],
        "hospital": "CLP El Azhar",
        "experience": 6,
        "education": ["Faculty of Medicine of Constantine, MD"],
        "bio": "Dermatologist treating skin conditions in children and adults.",
        "languages": ["Arabic", "French", "Tamazight"],
        "contact": {
            "phone": "+213 31 92 00 00",
            "email": "a.haddad@example.org",
            "address": "Cité Ziadia",
            "city": "Constantine",
            "region": "Constantine",
        },
    },
]


async def seed() -> None:
    """Insert sample doctors that are not present yet (matched by name)."""
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(doctors.c.name))
        existing = set(result.scalars().all())

        created = 0
        for doctor in SAMPLE_DOCTORS:
            if doctor["name"] in existing:
                continue
            await session.execute(doctors.insert().values(**doctor))
            created += 1

        await session.commit()
        print(f"✓ Seeded {created} doctor(s), {len(existing)} already present")


if __name__ == "__main__":
    asyncio.run(seed())
