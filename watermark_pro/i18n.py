"""
UI strings for English and Simplified Chinese.

Missing keys fall back to English, then to the key itself.
"""

from enum import Enum


class Language(str, Enum):
    EN = "en"
    ZH = "zh"


TRANSLATIONS = {
    Language.EN: {
        "app_title": "Watermark Pro AI",
        "app_subtitle": "Secure your visual assets",
        "upload_title": "Upload an Image",
        "upload_hint": "Drag and drop your image here, or click to browse files.",
        "supported_formats": "Supported formats: PNG, JPG, WEBP",
        "choose_image": "Choose image",
        "change_image": "Change Image",
        "download": "Download",
        "customize": "Customize",
        "mode_text": "Text",
        "mode_image": "Image",
        "watermark_text": "Watermark Text",
        "text_placeholder": "Enter watermark text...",
        "ai_suggest": "AI Suggest",
        "ai_thinking": "Thinking...",
        "suggestions": "Suggestions",
        "watermark_image": "Watermark Image",
        "upload_logo": "Upload logo",
        "remove_logo": "Remove",
        "image_scale": "Image Scale",
        "font_size": "Font Size",
        "color": "Color",
        "opacity": "Opacity",
        "rotation": "Rotation",
        "layout": "Layout",
        "tiled": "Tile pattern",
        "position": "Position",
        "gap": "Gap",
        "language": "Language",
        "pick_color": "Pick watermark color",
        "load_failed": "Could not load image",
        "export_done": "Saved {path}",
        "export_failed": "Export failed",
        "rendering": "Rendering preview...",
        "preview_ready": "Preview updated",
        "tl": "Top Left",
        "tc": "Top Center",
        "tr": "Top Right",
        "cl": "Center Left",
        "cc": "Center",
        "cr": "Center Right",
        "bl": "Bottom Left",
        "bc": "Bottom Center",
        "br": "Bottom Right",
    },
    Language.ZH: {
        "app_title": "水印大师 AI",
        "app_subtitle": "保护您的视觉资产",
        "upload_title": "上传图片",
        "upload_hint": "将图片拖放到此处，或点击浏览文件。",
        "supported_formats": "支持格式：PNG、JPG、WEBP",
        "choose_image": "选择图片",
        "change_image": "更换图片",
        "download": "下载",
        "customize": "自定义",
        "mode_text": "文字",
        "mode_image": "图片",
        "watermark_text": "水印文字",
        "text_placeholder": "输入水印文字...",
        "ai_suggest": "AI 建议",
        "ai_thinking": "思考中...",
        "suggestions": "建议",
        "watermark_image": "水印图片",
        "upload_logo": "上传标志",
        "remove_logo": "移除",
        "image_scale": "图片大小",
        "font_size": "字体大小",
        "color": "颜色",
        "opacity": "不透明度",
        "rotation": "旋转角度",
        "layout": "布局",
        "tiled": "平铺模式",
        "position": "位置",
        "gap": "间距",
        "language": "语言",
        "pick_color": "选择水印颜色",
        "load_failed": "无法加载图片",
        "export_done": "已保存 {path}",
        "export_failed": "导出失败",
        "rendering": "正在生成预览...",
        "preview_ready": "预览已更新",
        "tl": "左上",
        "tc": "顶部居中",
        "tr": "右上",
        "cl": "左侧居中",
        "cc": "居中",
        "cr": "右侧居中",
        "bl": "左下",
        "bc": "底部居中",
        "br": "右下",
    },
}


def tr(key: str, language: Language = Language.EN, **kwargs) -> str:
    """Look up a UI string, formatting it with ``kwargs`` if given."""
    table = TRANSLATIONS.get(Language(language), {})
    text = table.get(key) or TRANSLATIONS[Language.EN].get(key, key)
    return text.format(**kwargs) if kwargs else text
