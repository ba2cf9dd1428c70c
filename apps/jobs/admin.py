from django.contrib import admin
from .models import Job


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ('title', 'employer', 'category', 'status', 'applications_count', 'selected_worker', 'views', 'is_active')
    list_filter = ('status', 'category', 'is_active')
    search_fields = ('title', 'description', 'employer__email')
    readonly_fields = ('version', 'created_at', 'updated_at')
