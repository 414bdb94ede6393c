"""Starter content written when a folder is created.

The blob store has no empty folders, so a new folder is materialized by
writing an index page, its notes file and a draft inside ``unpublished/``.
"""

FOLDER_NOTES_NAME = ".folder-notes.md"
UNPUBLISHED_DIR = "unpublished"


def index_page(folder_name: str, folder_path: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{folder_name}</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            max-width: 1200px;
            margin: 0 auto;
            padding: 40px 20px;
            background: #f5f5f5;
        }}
        h1 {{
            color: #333;
            border-bottom: 2px solid #007bff;
            padding-bottom: 10px;
        }}
        .folder-info {{
            background: white;
            padding: 20px;
            border-radius: 8px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
            margin-top: 20px;
        }}
        .path {{
            color: #666;
            font-size: 14px;
            margin-top: 10px;
        }}
    </style>
</head>
<body>
    <h1>{folder_name}</h1>
    <div class="folder-info">
        <p>Welcome to the {folder_name} folder.</p>
        <p>This is the default index page. You can edit this file or add more content to this folder.</p>
        <p class="path">Path: {folder_path}/</p>
    </div>
</body>
</html>"""


def folder_notes(folder_name: str) -> str:
    return f"""# {folder_name}

## Overview
This folder contains pages and assets for the {folder_name} section.

## Structure
- `index.html` - Main page for this section
- `unpublished/` - Draft pages not yet published

## Notes
Add your notes about this folder here...
"""


DRAFT_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Draft - Unpublished</title>
</head>
<body>
    <h1>Draft Page</h1>
    <p>This is an unpublished draft. Move it out of the unpublished folder to make it public.</p>
</body>
</html>"""
