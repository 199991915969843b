"""api/ -- HTTP surface. Imports from auth/, catalog/, and core/; nothing imports from api/."""
