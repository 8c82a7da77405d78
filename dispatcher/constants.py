PARTNERSHIPS_COLLECTION = "partnerships"
USERS_COLLECTION = "users"
NOTIFICATION_QUEUE_COLLECTION = "notificationQueue"
SECURITY_INCIDENTS_COLLECTION = "securityIncidents"

# Trigger document patterns
STORY_DOCUMENT_PATTERN = "partnerships/{partnershipId}/stories/{storyId}"
QUEUE_DOCUMENT_PATTERN = "notificationQueue/{queueId}"

STORY_NOTIFICATION_TITLE = "New Disney Story! ✨"
STORY_NOTIFICATION_BODY = "{author_name} just wrote a magical Disney Daydream! Check it out!"
STORY_COMPLETED_TYPE = "story_completed"
DEFAULT_AUTHOR_NAME = "Your partner"

DEFAULT_SOUND = "default"
DEFAULT_BADGE = 1

INVALID_QUEUE_RECORD_ERROR = "Invalid notification data"
UNAUTHORIZED_STORY_UPDATE = "unauthorized_story_update"
