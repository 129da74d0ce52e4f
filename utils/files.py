"""
File handling utilities for store photos.

Uploaded photos are accepted only when the browser reports an `image/*`
mimetype. Accepted photos get a random file name, are resized to a fixed width
(height follows the aspect ratio) and written into the upload folder.
"""
import os
import uuid

from PIL import Image
from werkzeug.utils import secure_filename


class FileTypeNotAllowed(ValueError):
    """Raised when an upload is not an image."""


def is_photo(file_storage):
    """
    True when `file_storage` (a Werkzeug `FileStorage`) claims to be an image.

    Example:
        is_photo(request.files['photo'])  # True for image/png, image/jpeg, ...
    """
    return bool(file_storage and (file_storage.mimetype or '').startswith('image/'))


def get_uploaded_photo(files, field='photo'):
    """
    Returns the uploaded photo from `request.files`, or None when the form was
    submitted without one.

    Raises:
        FileTypeNotAllowed: If a file was submitted but is not an image.
    """
    file_storage = files.get(field)
    if file_storage is None or not file_storage.filename:
        return None
    if not is_photo(file_storage):
        raise FileTypeNotAllowed("That file type isn't allowed!")
    return file_storage


def photo_filename(mimetype):
    """Random file name whose extension is the mimetype's subtype, e.g. '<uuid4>.png'."""
    extension = mimetype.split('/', 1)[1].split(';', 1)[0].strip().lower()
    return secure_filename(f"{uuid.uuid4()}.{extension}")


def resize_photo(file_storage, upload_folder, width):
    """
    Resizes an uploaded photo to `width` pixels wide and writes it to `upload_folder`.

    Images narrower than `width` are scaled up, so every stored photo has the
    same width. Decoding errors from Pillow are not caught; an upload that is
    not a readable image fails the request.

    Args:
        file_storage: The Werkzeug `FileStorage` to read.
        upload_folder (str): Destination directory (created if missing).
        width (int): Target width in pixels.

    Returns:
        str: The stored file name (relative to `upload_folder`).
    """
    filename = photo_filename(file_storage.mimetype)
    os.makedirs(upload_folder, exist_ok=True)

    with Image.open(file_storage.stream) as image:
        height = max(1, round(image.height * width / image.width))
        resized = image.resize((width, height))
        # Written in the decoded format, whatever extension the mimetype gave us.
        resized.save(os.path.join(upload_folder, filename), format=image.format)

    return filename


def remove_photo(upload_folder, filename):
    """Deletes a stored photo; a file that is already gone is ignored."""
    try:
        os.remove(os.path.join(upload_folder, filename))
    except FileNotFoundError:
        pass
