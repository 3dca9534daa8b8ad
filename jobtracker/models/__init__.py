from .user import User, OAuthIdentity
from .profile import Profile
from .job import Job
