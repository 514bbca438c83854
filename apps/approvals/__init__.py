"""Content Approval Desk: review queues from Google Sheets, decisions to n8n."""
