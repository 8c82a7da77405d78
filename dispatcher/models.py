# Models are stored in Firebase Firestore, not Django DB.
# This file is kept for Django app structure compatibility.
#
# Firestore Collections:
# - partnerships/{partnershipId}: user1Id, user2Id
# - partnerships/{partnershipId}/stories/{storyId}: text, authorId, authorName, items
# - users/{uid}: User data including the push token (fcmToken)
# - notificationQueue/{queueId}: Pending pushes (targetToken, title, body, data, processed)
#
# See firebase_service.py for Firestore operations.
