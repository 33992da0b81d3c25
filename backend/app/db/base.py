from backend.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from backend.app.models.user import User  # noqa: F401
from backend.app.models.committee import Committee, CommitteeMember  # noqa: F401
from backend.app.models.project import Project, ProjectMember  # noqa: F401
from backend.app.models.due import Due  # noqa: F401
from backend.app.models.document import Document  # noqa: F401
from backend.app.models.quotation import Quotation  # noqa: F401
from backend.app.models.quotation_item import QuotationItem  # noqa: F401
from backend.app.models.blog_post import BlogPost  # noqa: F401
from backend.app.models.event import Event  # noqa: F401
