from dupsweep.core.models import KeepPolicy

KEEP_POLICY_CHOICES = [policy.value for policy in KeepPolicy]

KEEP_POLICY_HELP_TEXT = (
    "Which copy survives in every duplicate set:\n"
    "  oldest : Keep the earliest created file, delete later copies (default)\n"
    "  newest : Keep the most recently created file, delete earlier copies\n"
    "Copies with identical timestamps keep the first one resolved.\n"
    "Creation time is used where the OS records it, modification time otherwise."
)

EPILOG_TEXT = """
Examples:
  Preview what would be removed, without deleting anything
  %(prog)s -i ~/Downloads --dry-run

  Remove duplicates, keeping the oldest copy (asks for confirmation)
  %(prog)s -i ~/Downloads

  Same as above but without confirmation and with output to a file (for scripts)
  %(prog)s -i ~/Downloads --force > ~/dupsweep-report.txt

  Keep the newest copy, skip a directory, use 4 workers
  %(prog)s -i ~/Pictures --keep newest -e ~/Pictures/archive -w 4

Deletion is permanent. There is no trash and no undo.
"""
