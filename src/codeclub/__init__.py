"""codeclub: submission, judging-record and ranking service for student programming clubs."""
