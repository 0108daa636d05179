"""
Example: Decode an XML document, transcoding legacy charsets.
"""

from dataclasses import dataclass, field

from bodyflow import Client, transcoding_reader


@dataclass
class Slide:
    type: str
    title: str


@dataclass
class Slideshow:
    title: str
    author: str
    slides: list[Slide] = field(default_factory=list, metadata={"xml": "slide"})


def main():
    response = Client().get("https://httpbin.org/xml")
    if response.error is not None:
        print(f"Request failed: {response.error}")
        return
    show = response.xml(Slideshow, charset_reader=transcoding_reader)
    print(f"{show.title} by {show.author}")
    for slide in show.slides:
        print(f"  [{slide.type}] {slide.title}")


if __name__ == "__main__":
    main()
