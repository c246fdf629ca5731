# centralize imports for browser driver typing

from patchright.async_api import ElementHandle as PatchrightElementHandle
from patchright.async_api import Frame as PatchrightFrame
from patchright.async_api import Page as PatchrightPage
from playwright.async_api import ElementHandle as PlaywrightElementHandle
from playwright.async_api import Frame as PlaywrightFrame
from playwright.async_api import Page as PlaywrightPage

# Define types to be Union[Patchright, Playwright]
Page = PatchrightPage | PlaywrightPage
ElementHandle = PatchrightElementHandle | PlaywrightElementHandle
Frame = PatchrightFrame | PlaywrightFrame
