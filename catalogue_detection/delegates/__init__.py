# catalogue_detection/delegates/__init__.py

# Makes the delegate classes directly available from the 'delegates' package.
# Instead of: from catalogue_detection.delegates.web_scraper_delegate import WebScraperDelegate
# We can now use: from catalogue_detection.delegates import WebScraperDelegate

from .web_scraper_delegate import WebScraperDelegate
from .downloader_delegate import DownloaderDelegate
