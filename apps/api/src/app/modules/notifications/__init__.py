"""
Notifications Module

In-app notifications for applicants and admins, with best-effort email
copies for applicants.

API Endpoints:
- GET /notifications - List notifications
- POST /notifications/{id}/read - Mark a notification as read
"""
