COMMON_SKILLS = [
    "Web Development",
    "Mobile Development",
    "AI/ML",
    "Data Science",
    "Design",
    "Marketing",
    "Sales",
    "Project Management",
    "Social Media",
    "E-commerce",
    "Writing",
    "Photography",
    "Video Production",
    "Business Development",
    "Customer Service",
    "Event Planning",
    "Tutoring",
    "Research",
    "Public Speaking",
    "Content Creation",
    "Graphic Design",
    "Finance",
    "Psychology",
    "Healthcare",
    "Education",
    "Logistics",
    "Translation",
    "Music Production",
    "Fitness Training",
    "Cooking",
    "UX Design",
    "Career Counseling",
    "OCR/NLP",
    "Job Portal APIs",
    "UI Design",
    "Marketplace Management",
    "Mobile App",
    "Safety",
]

COMMON_INTERESTS = [
    "Technology",
    "Education",
    "Healthcare",
    "Finance",
    "Environment",
    "Sustainability",
    "Food",
    "Fashion",
    "Fitness",
    "Mental Health",
    "Gaming",
    "Social Media",
    "Content Creation",
    "Student Life",
    "Community",
    "Business",
    "Design",
    "Music",
    "Sports",
    "Travel",
    "Books",
    "Movies",
    "Art",
    "Photography",
    "Volunteering",
    "Local Community",
    "Career Development",
    "Skills Development",
    "Networking",
    "Innovation",
    "Events",
    "Freelancing",
    "Housing",
    "Lifestyle",
    "AI",
    "Productivity",
    "Jobs",
    "Career",
    "Mentorship",
    "Transportation",
    "Health",
    "Savings",
    "Local Business",
]


def normalize_entries(entries: list[str]) -> list[str]:
    """Strip whitespace and drop blanks and repeats, keeping first-seen order."""
    seen: list[str] = []
    for entry in entries:
        entry = entry.strip()
        if entry and entry not in seen:
            seen.append(entry)
    return seen


def suggest(query: str, vocabulary: list[str], selected: list[str] | None = None) -> list[str]:
    """Vocabulary entries containing `query` (case-insensitive) that aren't already selected."""
    query = query.strip().lower()
    if not query:
        return []
    taken = set(selected or [])
    return [v for v in vocabulary if query in v.lower() and v not in taken]
