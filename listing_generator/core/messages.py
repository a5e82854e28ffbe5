# core/messages.py
# 面向用户的提示文案，按市场语言区分

from typing import Dict

MESSAGES: Dict[str, Dict[str, str]] = {
    "es": {
        "empty_product_name": "Por favor, ingrese un nombre de producto.",
        "missing_key": "No se encontró una clave de API. Ingrésela en la configuración.",
        "credentials_required": "Se requiere una clave de API válida. Ingrésela nuevamente en la configuración.",
        "permission_error": "Error de permiso o clave de API inválida. Verifique su clave.",
        "quota_error": "Error de cuota (429). Verifique la facturación de su clave de API.",
        "generation_error": "Ocurrió un error al generar los datos.",
        "details_ready": "¡Detalles generados! Ahora generando imágenes...",
        "image_error": "Error Imagen {slot}: {error}",
        "regenerate_error": "Error al regenerar imagen {slot}: {error}",
        "no_prompt": "No hay prompt para la imagen {slot}.",
        "no_draft": "Primero genere los detalles del producto.",
        "slot_busy": "La imagen {slot} todavía se está generando.",
        "generation_busy": "Ya hay una generación en curso. Espere a que termine.",
        "incomplete_data": "No hay suficientes datos de producto para guardar.",
        "network_error": "Error de red o CORS. Asegúrese de que el servidor esté configurado correctamente.",
        "script_failed": "El script del servidor falló. Sigue la guía para solucionarlo.",
        "server_error": "Error del servidor ({status}).",
        "save_failed": "El servidor indicó un fallo al guardar.",
        "unexpected_response": "Respuesta inesperada del servidor: {body}",
        "saved": "¡Producto guardado en la base de datos con éxito!",
        "categories_url_missing": "Configure la URL de la API de categorías.",
        "categories_unexpected": "Respuesta inesperada de la API.",
    },
    "en": {
        "empty_product_name": "Please enter a product name.",
        "missing_key": "No API key found. Enter one in the settings.",
        "credentials_required": "A valid API key is required. Enter it again in the settings.",
        "permission_error": "Permission error or invalid API key. Check your key.",
        "quota_error": "Quota error (429). Check the billing of your API key.",
        "generation_error": "An error occurred while generating the data.",
        "details_ready": "Details generated! Now generating images...",
        "image_error": "Image {slot} error: {error}",
        "regenerate_error": "Error regenerating image {slot}: {error}",
        "no_prompt": "There is no prompt for image {slot}.",
        "no_draft": "Generate the product details first.",
        "slot_busy": "Image {slot} is still being generated.",
        "generation_busy": "A generation is already in progress. Wait for it to finish.",
        "incomplete_data": "There is not enough product data to save.",
        "network_error": "Network or CORS error. Make sure the server is configured correctly.",
        "script_failed": "The server script failed. Follow the guide to fix it.",
        "server_error": "Server error ({status}).",
        "save_failed": "The server reported a failure while saving.",
        "unexpected_response": "Unexpected response: {body}",
        "saved": "Product saved to the database successfully!",
        "categories_url_missing": "Configure the categories API URL.",
        "categories_unexpected": "Unexpected API response.",
    },
}


def message(key: str, language: str = "es", **kwargs) -> str:
    table = MESSAGES.get(language) or MESSAGES["es"]
    return table[key].format(**kwargs)
