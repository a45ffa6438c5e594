from .publication import Publication, PublicationTranslation, PublicationType, publication_categories
from .category import Category, CategoryTranslation
from .guestbook import GuestBook

__all__ = [
    "Publication",
    "PublicationTranslation",
    "PublicationType",
    "publication_categories",
    "Category",
    "CategoryTranslation",
    "GuestBook",
]
