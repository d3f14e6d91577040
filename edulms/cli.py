"""
Scheduled jobs, run from cron through the Flask CLI:

    0 9 * * *  flask --app edulms.app send-reminders
    0 0 * * 0  flask --app edulms.app update-stats
"""
import logging

import click

from edulms.services.datastore import get_store
from edulms.services.notifications import send_assignment_reminders, update_user_statistics

logger = logging.getLogger(__name__)


def register_commands(app):
    @app.cli.command('send-reminders')
    def send_reminders_command():
        """Email students about assignments due within the reminder window."""
        try:
            result = send_assignment_reminders(get_store())
        except Exception as e:
            logger.error("Error sending reminders: %s", e)
            raise
        click.echo(f"Sent {result['emails_sent']} reminder emails")

    @app.cli.command('update-stats')
    def update_stats_command():
        """Recompute the cached statistics on every user document."""
        try:
            result = update_user_statistics(get_store())
        except Exception as e:
            logger.error("Error updating user statistics: %s", e)
            raise
        click.echo(f"Updated statistics for {result['users_updated']} users")
