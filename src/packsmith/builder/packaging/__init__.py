"""
The `packaging` sub-package contains the stages of an addon build.

This includes:
- Staging each declared pack into an isolated, uniquely named workspace.
- Applying profile-selected content transforms to the staged files.
- Deploying staged packs into the game's development pack folders.
- Bundling all staged packs into a single `.mcaddon` archive.
"""
