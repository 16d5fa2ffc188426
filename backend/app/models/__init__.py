from .user import User, UserPlan
from .summary import Summary, SummaryStatus, VideoMetadata
from .linkedin_post import LinkedinPost
from .website_summary import WebsiteSummary
