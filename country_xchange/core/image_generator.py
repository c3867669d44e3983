from PIL import Image, ImageDraw, ImageFont

TOP_N = 5


def _load_fonts():
    try:
        title_font = ImageFont.truetype("DejaVuSans-Bold.ttf", 32)
        header_font = ImageFont.truetype("DejaVuSans-Bold.ttf", 24)
        text_font = ImageFont.truetype("DejaVuSans.ttf", 18)
    except IOError:
        # Fallback if system fonts aren't found
        title_font = ImageFont.load_default()
        header_font = ImageFont.load_default()
        text_font = ImageFont.load_default()
    return title_font, header_font, text_font


def top_by_gdp(records, limit=TOP_N):
    ranked = [r for r in records if r.estimated_gdp is not None]
    ranked.sort(key=lambda r: r.estimated_gdp, reverse=True)
    return ranked[:limit]


def generate_summary_image(records, refreshed_at, image_path):
    """Draw the refresh summary and save it as a PNG at ``image_path``."""
    title_font, header_font, text_font = _load_fonts()

    width, height = 800, 600
    img = Image.new("RGB", (width, height), color="white")
    draw = ImageDraw.Draw(img)

    y_position = 50
    draw.text((50, y_position), "Country Data Summary", fill="black", font=title_font)
    y_position += 60

    draw.text(
        (50, y_position),
        f"Total Countries: {len(records)}",
        fill="black",
        font=header_font,
    )
    y_position += 50

    draw.text(
        (50, y_position),
        f"Top {TOP_N} Countries by Estimated GDP:",
        fill="black",
        font=header_font,
    )
    y_position += 40

    top_countries = top_by_gdp(records)
    if not top_countries:
        draw.text((70, y_position), "No GDP data available.", fill="gray", font=text_font)
        y_position += 35

    for i, country in enumerate(top_countries, 1):
        text = f"{i}. {country.name}: ${country.estimated_gdp:,.2f}"
        draw.text((70, y_position), text, fill="black", font=text_font)
        y_position += 35

    y_position += 30
    draw.text(
        (50, y_position),
        f"Last Refreshed: {refreshed_at.strftime('%Y-%m-%d %H:%M:%S UTC')}",
        fill="gray",
        font=text_font,
    )

    img.save(image_path, "PNG")
